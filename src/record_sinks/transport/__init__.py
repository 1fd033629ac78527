from .broker import KafkaTransport, producer_options
from .http import HttpTransport
from .sql import SqlTransport

__all__ = ["SqlTransport", "HttpTransport", "KafkaTransport", "producer_options"]
