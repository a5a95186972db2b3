"""
Kafka Infrastructure

Producer, Config 등 Kafka 관련 인프라 코드
"""

from .producer import DomainEventProducer, get_event_producer
from .config import KafkaConfig, kafka_config

__all__ = [
    'DomainEventProducer',
    'get_event_producer',
    'KafkaConfig',
    'kafka_config',
]
