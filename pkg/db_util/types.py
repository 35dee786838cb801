from dataclasses import dataclass


@dataclass
class PostgresConfig:
    host: str
    port: int
    username: str
    password: str
    database: str = "postgres"  # Default database
    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: int = 30  # seconds
    pool_recycle: int = 3600
    application_name: str = "business-mind"
