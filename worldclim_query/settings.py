import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Settings:
    duckdb_path: str
    duckdb_threads: int
    duckdb_spatial_install: bool

    worldclim_table: str
    worldclim_map_table: str
    variable_registry_path: Optional[str]

    default_page_limit: int
    max_page_limit: int

    cors_origins: List[str]
    cors_origin_regex: Optional[str]

    log_level: str
    log_file: Optional[str]

    @classmethod
    def from_env(cls) -> "Settings":
        def _bool(name: str, default: str) -> bool:
            return os.getenv(name, default).strip().lower() == "true"

        duckdb_path = os.getenv("DUCKDB_DB_PATH", "/data/worldclim.duckdb")
        duckdb_threads = int(os.getenv("DUCKDB_THREADS", "8"))
        duckdb_spatial_install = _bool("DUCKDB_SPATIAL_INSTALL", "true")

        worldclim_table = os.getenv("WORLDCLIM_TABLE", "worldclim").strip()
        worldclim_map_table = os.getenv("WORLDCLIM_MAP_TABLE", "worldclim_map").strip()
        # Empty means the catalog bundled with the package.
        variable_registry_path = os.getenv("VARIABLE_REGISTRY_PATH", "").strip() or None

        default_page_limit = int(os.getenv("DEFAULT_PAGE_LIMIT", "10"))
        max_page_limit = int(os.getenv("MAX_PAGE_LIMIT", "10000"))

        cors_origins = [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:8000,http://127.0.0.1:8000",
            ).split(",")
            if o.strip()
        ]
        cors_origin_regex = os.getenv("CORS_ORIGIN_REGEX", "").strip() or None

        log_level = os.getenv("LOG_LEVEL", "WARNING").strip().upper()
        log_file = os.getenv("LOG_FILE", "").strip() or None

        return cls(
            duckdb_path=duckdb_path,
            duckdb_threads=duckdb_threads,
            duckdb_spatial_install=duckdb_spatial_install,
            worldclim_table=worldclim_table,
            worldclim_map_table=worldclim_map_table,
            variable_registry_path=variable_registry_path,
            default_page_limit=default_page_limit,
            max_page_limit=max_page_limit,
            cors_origins=cors_origins,
            cors_origin_regex=cors_origin_regex,
            log_level=log_level,
            log_file=log_file,
        )


S = Settings.from_env()
