#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("tlsetup")


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. TLSETUP_CONFIG environment variable
    2. ~/.tlsetup/ directory
    """
    if 'TLSETUP_CONFIG' in os.environ:
        path = Path(os.environ['TLSETUP_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.tlsetup'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 0:
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                import yaml
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                with open(config_path, 'r') as f:
                    file_config = json.load(f)

            config = merge_configs(config, file_config)
        except Exception as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    config = apply_env_overrides(config)

    level = str(config.get('logging', {}).get('level', 'INFO')).upper()
    logger.setLevel(getattr(logging, level, logging.INFO))

    return config


def get_default_config():
    """Get default configuration."""
    return {
        "ctan": {
            "master_url": "http://dante.ctan.org/tex-archive/",
            "mirror_url": "https://mirrors.ctan.org/",
            "api_url": "https://ctan.org/json/2.0",
            "max_tries": 10,
            "retry_delay_seconds": 0.5,
            # Mirrors known to serve packages with mismatched checksums
            "unstable_mirrors": ["cicku"],
        },
        "http": {
            "timeout_seconds": 30,
        },
        "tlnet": {
            "ctan_path": "systems/texlive/tlnet/",
            "tlcontrib_path": "systems/texlive/tlcontrib/",
            "tlpretest_path": "systems/texlive/tlpretest/",
            "version_file": "TEXLIVE_{version}",
            "pretest_version_file": "TEXLIVE_{version}",
            "historic": {
                "default": "https://ftp.math.utah.edu/pub/tex/",
                "master": "ftp://tug.org/",
                # First match wins
                "paths": [
                    {
                        "template": "historic/systems/texlive/{version}/tlnet-final/",
                        "versions": ">=2010",
                    },
                    {
                        "template": "historic/systems/texlive/{version}/tlnet/",
                        "versions": ">=2008 <2010",
                    },
                ],
            },
        },
        "releases": {
            "current": {
                "version": "2026",
                "release_date": "2026-03-01T00:00:00+00:00",
            },
            "next": {
                "version": "2027",
                "release_date": "2027-03-01T00:00:00",
            },
        },
        "cache": {
            "enabled": True,
            "force_update": False,
            "directory": "~/.cache/tlsetup",
            "state_file": "~/.cache/tlsetup/state.json",
        },
        "logging": {
            "level": "INFO",
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: TLSETUP_SECTION_KEY
    For example: TLSETUP_CTAN_MAX_TRIES=3
    """
    env_prefix = "TLSETUP_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == 'TLSETUP_CONFIG':
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key:
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    break
            else:
                break

    return config
