"""speclint: lint and auto-fix OpenAPI / JSON Schema documents."""

__version__ = "0.4.0"
