"""userapi - user records REST backend with a SQL migration engine."""

__version__ = "1.0.0"
