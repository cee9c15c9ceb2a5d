"""
Configuration loading for the lakehouse sink.
"""

from .config_loader import SinkConfig, load_config

__all__ = ["SinkConfig", "load_config"]
