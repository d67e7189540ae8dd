"""
Output configuration loading.
"""

from .output_config import ConfigLoader, OutputConfig, load_config_dict

__all__ = ["ConfigLoader", "OutputConfig", "load_config_dict"]
