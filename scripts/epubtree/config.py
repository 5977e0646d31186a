"""
Build configuration: defaults, optional YAML file, environment, CLI overrides.
"""

import os

import yaml


# Fields that must be set from somewhere
REQUIRED_FIELDS = ["input", "output", "cover", "style", "uuid"]

# Defaults applied if missing
DEFAULTS = {
    "input": "/tmp/book",
    "docs_dir": os.path.join("docs", "it"),
    "output": "./il-manuale-del-buon-dev.epub",
    "cover": "./assets/cover.jpg",
    "style": "./assets/style.css",
    "uuid": "",
    "title": "Il manuale del buon dev",
    "author": "Community",
    "lang": "it",
    "image_prefix": "/book",
    "workers": 10,
    "highlight_style": "monokai",
    "markdown_extensions": "pipe_tables+raw_html",
}

# Environment variable → field
ENV_VARS = {
    "INPUT": "input",
    "DOCS_DIR": "docs_dir",
    "OUTPUT": "output",
    "COVER": "cover",
    "STYLE": "style",
    "UUID": "uuid",
}


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""
    pass


class BookConfig:
    """
    Loaded, validated build configuration.

    Usage:
        config = BookConfig.load(config_file="book.yaml")
        config.title          # "Il manuale del buon dev"
        config.docs_path      # "/tmp/book/docs/it"
        config.get("series")  # None if not set
    """

    def __init__(self, data):
        self._data = data

    @classmethod
    def load(cls, config_file=None, environ=None, overrides=None, check_paths=True):
        """
        Load configuration. Later sources win:
        defaults < config_file < environment < overrides.
        """
        data = dict(DEFAULTS)

        if config_file:
            data.update(_read_yaml(config_file))

        env = os.environ if environ is None else environ
        for var, key in ENV_VARS.items():
            if env.get(var):
                data[key] = env[var]

        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value

        config = cls(data)
        config.validate(check_paths=check_paths)
        return config

    def validate(self, check_paths=True):
        """Raise ConfigError on missing fields, bad values, or missing paths."""
        missing = [key for key in REQUIRED_FIELDS if not self._data.get(key)]
        if missing:
            raise ConfigError(
                f"Configuration missing required fields: {', '.join(missing)}"
            )

        try:
            workers = int(self._data["workers"])
        except (TypeError, ValueError):
            raise ConfigError(f"workers must be an integer, got {self._data['workers']!r}")
        if workers < 1:
            raise ConfigError(f"workers must be at least 1, got {workers}")
        self._data["workers"] = workers

        if not check_paths:
            return

        for label, path, is_dir in [
            ("input", self.input, True),
            ("docs_dir", self.docs_path, True),
            ("cover", self.cover, False),
            ("style", self.style, False),
        ]:
            exists = os.path.isdir(path) if is_dir else os.path.isfile(path)
            if not exists:
                kind = "Directory" if is_dir else "File"
                raise ConfigError(f"{kind} for '{label}' not found: {path}")

    # ── Attribute access ───────────────────────────────────

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"BookConfig has no field '{name}'")

    def get(self, key, default=None):
        return self._data.get(key, default)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    # ── Convenience ────────────────────────────────────────

    @property
    def docs_path(self):
        """Root directory of the chapter tree."""
        return os.path.join(self.input, self.docs_dir)

    @property
    def identifier(self):
        return f"urn:uuid:{self.uuid}"

    def summary(self):
        """Print a short config summary."""
        print(f"\n  Book:   {self.title}")
        print(f"  Author: {self.author}")
        print(f"  Source: {self.docs_path}")
        print(f"  Output: {self.output}")


def _read_yaml(path):
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must be a YAML mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(DEFAULTS))
    if unknown:
        print(f"  Warning: unknown config keys ignored: {', '.join(unknown)}")
    return {key: value for key, value in data.items() if key in DEFAULTS}
