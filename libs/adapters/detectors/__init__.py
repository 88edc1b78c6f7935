from .fakes import ScriptedDetector

__all__ = ["ScriptedDetector"]
