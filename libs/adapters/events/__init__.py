from .console import ConsoleEventsPort
from .fakes import RecordingEventsPort
from .publisher import FanoutEventsPort, PublishingEventsPort

__all__ = [
    "ConsoleEventsPort",
    "RecordingEventsPort",
    "FanoutEventsPort",
    "PublishingEventsPort",
]
