"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict

import yaml

from models import PullOptions
from plugins import OPTIONAL_PLUGINS

DEFAULT_CONFIG: Dict[str, Any] = {
    'notion': {
        'token': '${NOTION_TOKEN}',
        'outline_title': 'Outline',
    },
    'export': {
        'markdown_output_path': './docs',
        'status_tag': 'Publish',
        'custom_pages_path': 'src/pages',
        'custom_staging_dir': 'tmp',
        'overwrite_custom_pages': False,
    },
    'advanced': {
        'request_timeout': 30,
        'max_retries': 10,
        'rate_limit': {
            'tokens_per_interval': 3,
            'interval_seconds': 1.0,
        },
        'show_progress': False,
    },
    'plugins': {
        'enabled': [],
    },
    'logging': {},
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        return cls._substitute_env_vars_recursive(config_data)

    @classmethod
    def defaults(cls) -> Dict[str, Any]:
        """Default configuration with environment variables substituted."""
        return cls._substitute_env_vars_recursive(copy.deepcopy(DEFAULT_CONFIG))

    @classmethod
    def with_defaults(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """Fill missing keys of config from the defaults."""
        return _deep_merge(cls.defaults(), config)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'notion.token')
        cls._validate_required_field(config, 'notion.root_page')
        cls._validate_required_field(config, 'export.markdown_output_path')

        output_path = get_nested(config, 'export.markdown_output_path')
        if os.path.exists(output_path) and not os.path.isdir(output_path):
            raise ValueError(f"export.markdown_output_path '{output_path}' is not a directory")

        status_tag = get_nested(config, 'export.status_tag', 'Publish')
        if not isinstance(status_tag, str) or not status_tag:
            raise ValueError("export.status_tag must be a non-empty string ('*' publishes every status)")

        overwrite = get_nested(config, 'export.overwrite_custom_pages', False)
        if not isinstance(overwrite, bool):
            raise ValueError("export.overwrite_custom_pages must be a boolean")

        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

        max_retries = get_nested(config, 'advanced.max_retries', 10)
        if not isinstance(max_retries, int) or max_retries < 1:
            raise ValueError("advanced.max_retries must be a positive integer")

        tokens = get_nested(config, 'advanced.rate_limit.tokens_per_interval', 3)
        if not isinstance(tokens, int) or tokens < 1:
            raise ValueError("advanced.rate_limit.tokens_per_interval must be a positive integer")

        interval = get_nested(config, 'advanced.rate_limit.interval_seconds', 1.0)
        if not isinstance(interval, (int, float)) or interval <= 0:
            raise ValueError("advanced.rate_limit.interval_seconds must be a positive number")

        enabled = get_nested(config, 'plugins.enabled', []) or []
        if not isinstance(enabled, list):
            raise ValueError("plugins.enabled must be a list of plugin names")
        unknown = [name for name in enabled if name not in OPTIONAL_PLUGINS]
        if unknown:
            raise ValueError(
                f"Unknown plugins in plugins.enabled: {unknown}. Available: {sorted(OPTIONAL_PLUGINS)}"
            )

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('notion', 'export', 'advanced', 'logging'):
            if section not in merged or merged[section] is None:
                merged[section] = {}

        if getattr(args, 'notion_token', None):
            merged['notion']['token'] = args.notion_token

        if getattr(args, 'root_page', None):
            merged['notion']['root_page'] = args.root_page

        if getattr(args, 'markdown_output_path', None):
            merged['export']['markdown_output_path'] = args.markdown_output_path

        if getattr(args, 'status_tag', None):
            merged['export']['status_tag'] = args.status_tag

        if getattr(args, 'custom_pages_path', None):
            merged['export']['custom_pages_path'] = args.custom_pages_path

        if getattr(args, 'yes', False):
            merged['export']['overwrite_custom_pages'] = True

        if getattr(args, 'progress', None) is not None:
            merged['advanced']['show_progress'] = args.progress

        if getattr(args, 'log_level', None):
            merged['logging']['level'] = args.log_level

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        return merged

    @staticmethod
    def to_pull_options(config: Dict[str, Any]) -> PullOptions:
        """Build the run options from a validated configuration."""
        return PullOptions(
            notion_token=get_nested(config, 'notion.token'),
            root_page=get_nested(config, 'notion.root_page'),
            markdown_output_path=get_nested(config, 'export.markdown_output_path', './docs'),
            status_tag=get_nested(config, 'export.status_tag', 'Publish'),
            outline_title=get_nested(config, 'notion.outline_title', 'Outline'),
            custom_pages_path=get_nested(config, 'export.custom_pages_path', 'src/pages'),
            custom_staging_dir=get_nested(config, 'export.custom_staging_dir', 'tmp'),
            overwrite_custom_pages=get_nested(config, 'export.overwrite_custom_pages', False),
            show_progress=get_nested(config, 'advanced.show_progress', False)
        )

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "notion.root_page")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'get_nested', 'DEFAULT_CONFIG']
