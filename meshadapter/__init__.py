"""Model repository helpers for MLServer and the OpenVINO Model Server."""

__version__ = "0.1.0"