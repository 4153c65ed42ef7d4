"""
Strata Shared Module
====================

Configuration, logging and console helpers shared by the Strata core and
its command-line front end.
"""

from shared.config import StrataConfig, get_config

__all__ = ["StrataConfig", "get_config"]
