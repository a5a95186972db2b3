"""
Domain Event Base Class

Kafka로 직렬화되는 이벤트의 공통 부분. 하위 클래스는 dataclass 필드만 선언한다.
"""

from dataclasses import dataclass, asdict, fields
from datetime import datetime
from typing import Dict, Optional

EVENT_TYPE_KEY = '__event_type__'


@dataclass
class DomainEvent:
    timestamp: datetime

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    @property
    def partition_key(self) -> Optional[str]:
        """같은 방의 이벤트가 순서대로 소비되도록 room_id를 키로 사용"""
        return getattr(self, 'room_id', None)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        # Consumer 라우팅용
        data[EVENT_TYPE_KEY] = self.event_type
        return data

    @classmethod
    def from_dict(cls, data: Dict):
        """dict에서 Event 복원 (모르는 키는 무시, 입력 dict는 변경하지 않음)"""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        if isinstance(values.get('timestamp'), str):
            values['timestamp'] = datetime.fromisoformat(values['timestamp'])
        return cls(**values)
