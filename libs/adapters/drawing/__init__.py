from .fakes import RecordingSurface

__all__ = ["RecordingSurface"]
