from .fakes import FakeCamera

__all__ = ["FakeCamera"]
