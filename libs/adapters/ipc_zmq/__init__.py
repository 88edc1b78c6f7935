from .fakes import FakeEventSubPort, FakeScannerCommandPort

__all__ = ["FakeEventSubPort", "FakeScannerCommandPort"]
