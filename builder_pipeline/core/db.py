"""Database helpers for the builder directory store."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import extras, pool

from builder_pipeline.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


class StorageError(RuntimeError):
    """Raised when the directory store rejects a read or write."""


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise StorageError("DATABASE_URL is required for database connections")
        try:
            _connection_pool = pool.SimpleConnectionPool(
                minconn,
                maxconn,
                dsn=settings.database_url,
                connect_timeout=10,
            )
        except psycopg2.Error as exc:
            raise StorageError(f"unable to connect to the database: {exc}") from exc
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def _prepare_params(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": row.get("name"),
        "website": row.get("website"),
        "address": row.get("address"),
        "city": row.get("city"),
        "state": row.get("state"),
        "zip": row.get("zip"),
        "phone": row.get("phone"),
        "email": row.get("email"),
        "lat": row.get("lat"),
        "lng": row.get("lng"),
        "description": row.get("description"),
        "van_types": row.get("van_types"),
        "amenities": extras.Json(row.get("amenities") or []),
        "services": extras.Json(row.get("services") or []),
        "social_media": extras.Json(row.get("social_media") or {}),
        "photos": extras.Json(row.get("photos") or []),
    }


_UPSERT_BUILDER = """
INSERT INTO builders (
    name,
    website,
    address,
    city,
    state,
    zip,
    phone,
    email,
    lat,
    lng,
    description,
    van_types,
    amenities,
    services,
    social_media,
    photos,
    updated_at
) VALUES (
    %(name)s,
    %(website)s,
    %(address)s,
    %(city)s,
    %(state)s,
    %(zip)s,
    %(phone)s,
    %(email)s,
    %(lat)s,
    %(lng)s,
    %(description)s,
    %(van_types)s,
    %(amenities)s,
    %(services)s,
    %(social_media)s,
    %(photos)s,
    NOW()
)
ON CONFLICT (name) DO UPDATE SET
    website = EXCLUDED.website,
    address = EXCLUDED.address,
    city = EXCLUDED.city,
    state = EXCLUDED.state,
    zip = EXCLUDED.zip,
    phone = EXCLUDED.phone,
    email = EXCLUDED.email,
    lat = EXCLUDED.lat,
    lng = EXCLUDED.lng,
    description = EXCLUDED.description,
    van_types = EXCLUDED.van_types,
    amenities = EXCLUDED.amenities,
    services = EXCLUDED.services,
    social_media = EXCLUDED.social_media,
    photos = EXCLUDED.photos,
    updated_at = NOW();
"""

_SELECT_COLUMNS = """
SELECT name, website, address, city, state, zip, phone, email, lat, lng,
       description, van_types, amenities, services, social_media, photos
FROM builders
"""

_FIND_BY_NAME = _SELECT_COLUMNS + """
WHERE lower(regexp_replace(btrim(name), '\\s+', ' ', 'g')) = %(name)s
LIMIT 1;
"""

_UPDATE_COORDINATES = """
UPDATE builders SET lat = %(lat)s, lng = %(lng)s, updated_at = NOW()
WHERE name = %(name)s;
"""


def upsert_builder(row: Dict[str, Any]) -> None:
    """Persist a builder row, performing an idempotent upsert keyed on name."""
    params = _prepare_params(row)
    if not params["name"] or not params["state"]:
        raise ValueError("name and state are required for upsert")

    try:
        with get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(_UPSERT_BUILDER, params)
                conn.commit()
            except psycopg2.Error:
                conn.rollback()
                raise
    except psycopg2.Error as exc:
        raise StorageError(f"failed to upsert {params['name']}: {exc}") from exc
    logger.debug("Upserted builder %s", params["name"])


def find_builder_by_name(normalized_name: str) -> Optional[Dict[str, Any]]:
    """Row whose trimmed, whitespace-collapsed, lower-cased name matches."""
    try:
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(_FIND_BY_NAME, {"name": normalized_name})
                row = cur.fetchone()
    except psycopg2.Error as exc:
        raise StorageError(f"failed to look up {normalized_name}: {exc}") from exc
    return dict(row) if row else None


def list_builders(state: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = _SELECT_COLUMNS
    params: Dict[str, Any] = {}
    if state:
        sql += " WHERE state = %(state)s"
        params["state"] = state
    sql += " ORDER BY name;"
    try:
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
    except psycopg2.Error as exc:
        raise StorageError(f"failed to list builders: {exc}") from exc
    return [dict(row) for row in rows]


def update_coordinates(name: str, lat: float, lng: float) -> None:
    try:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(_UPDATE_COORDINATES, {"name": name, "lat": lat, "lng": lng})
            conn.commit()
    except psycopg2.Error as exc:
        raise StorageError(f"failed to update coordinates for {name}: {exc}") from exc
