"""
Kafka Configuration
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings


class KafkaConfig(BaseSettings):
    """Kafka 설정"""

    enabled: bool = Field(
        default=True,
        description="Start the producer on application startup"
    )

    # Kafka 브로커 주소
    bootstrap_servers: List[str] = Field(
        default=["localhost:9092"],
        description="Kafka bootstrap servers"
    )

    # Producer 설정
    producer_acks: str = Field(
        default="all",
        description="Producer acks: 'all', '1', '0'"
    )
    producer_compression_type: str = Field(
        default="gzip",
        description="Compression type: 'none', 'gzip', 'snappy', 'lz4'"
    )
    producer_request_timeout_ms: int = Field(
        default=10000,
        description="Request timeout in milliseconds"
    )

    # Topic 설정
    topic_note_events: str = "note.events"
    topic_notification_events: str = "notification.events"

    class Config:
        env_prefix = "KAFKA_"
        case_sensitive = False


# Singleton instance
kafka_config = KafkaConfig()
