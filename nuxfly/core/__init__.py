"""
nuxfly Core

Configuration resolution, descriptor handling, flyctl output parsing,
template rendering and validation.
"""

from .config_loader import ConfigLoader, FrameworkConfigLoader, load_config, validate_config
from .descriptor import parse_descriptor, resolve_descriptor_path
from .template_generator import TemplateGenerator

__all__ = [
    "ConfigLoader",
    "FrameworkConfigLoader",
    "load_config",
    "validate_config",
    "parse_descriptor",
    "resolve_descriptor_path",
    "TemplateGenerator",
]
