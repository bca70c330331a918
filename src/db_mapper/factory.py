"""ORM factory.

Supports two configuration modes:
1. Profile mode (db.toml + DB_MAPPER_PROFILE): named profiles with pool sizes
   and optional schema validation
2. Direct mode (DB_MAPPER_DATABASE_URL): a single connection URL

There is no cached default instance: every call to ``get_orm()`` builds a
new ``ORM`` and the caller owns (and closes) it.

Usage:
    from db_mapper.factory import connect_and_validate, get_orm

    result = await connect_and_validate("local", record_types=[User, Article])
    if not result.success:
        print(result.error)

    orm = get_orm("local")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from urllib.parse import quote

from sqlalchemy import exc
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from db_mapper.config.loader import load_db_config
from db_mapper.config.models import DatabaseProfile
from db_mapper.config.settings import Settings, get_settings
from db_mapper.orm.core import ORM
from db_mapper.schema.models import ConnectionResult

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(settings: Settings | None = None) -> str:
    """Get active profile name from the ``DB_MAPPER_PROFILE`` setting.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    settings = settings or get_settings()
    if settings.profile:
        return settings.profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        "Set DB_MAPPER_PROFILE=<name> or pass --profile."
    )


def get_profile(profile_name: str, settings: Settings | None = None) -> DatabaseProfile:
    """Look up *profile_name* in the configured db.toml.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ProfileNotFoundError: If the profile is not defined
    """
    settings = settings or get_settings()
    config = load_db_config(settings.config_file)
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys())
        raise ProfileNotFoundError(f"Profile '{profile_name}' not found. Available: {available}")
    return config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# ORM Factory
# ============================================================================


def get_orm(
    profile_name: str | None = None,
    database_url: str | None = None,
    settings: Settings | None = None,
) -> ORM:
    """Build an ``ORM`` from an explicit URL, a profile, or the environment.

    Resolution order:
    1. *database_url* argument
    2. *profile_name* argument (looked up in db.toml)
    3. ``DB_MAPPER_DATABASE_URL``
    4. ``DB_MAPPER_PROFILE``

    Raises:
        ProfileNotFoundError: If nothing is configured or the profile is unknown
        FileNotFoundError: If a profile is requested but db.toml is missing

    Example:
        >>> orm = get_orm(database_url="sqlite:///app.db")
        >>> users = await orm.select(User, "SELECT * FROM user")
        >>> await orm.close()
    """
    settings = settings or get_settings()

    if database_url:
        return ORM(database_url)

    if profile_name is None and settings.database_url:
        return ORM(settings.database_url)

    if profile_name is None:
        profile_name = get_active_profile_name(settings)

    profile = get_profile(profile_name, settings)
    return ORM(resolve_url(profile), max_open=profile.max_open, max_idle=profile.max_idle)


# ============================================================================
# Connection and Validation
# ============================================================================


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((OSError, ConnectionError, exc.OperationalError, exc.InterfaceError)),
    reraise=True,
)
async def _check_connection(orm: ORM) -> None:
    """Run ``SELECT 1``, retrying transient connection failures."""
    await orm.test_connection()


async def connect_and_validate(
    profile_name: str | None = None,
    record_types: Iterable[type] = (),
    database_url: str | None = None,
    settings: Settings | None = None,
) -> ConnectionResult:
    """Connect to database and validate record types against its schema.

    The connection check is retried (3 attempts, exponential backoff);
    schema validation itself is not.  Validation is skipped when the config
    sets ``validate_on_connect = false`` or no record types are given.

    Args:
        profile_name: Profile name from db.toml. If None, uses the
            ``DB_MAPPER_*`` environment settings.
        record_types: Record dataclasses whose tables should be checked.
        database_url: Connect to this URL instead of a profile.
        settings: Settings to use instead of the cached environment settings.

    Returns:
        ConnectionResult with success status and validation report

    Example:
        >>> result = await connect_and_validate("local", [User, Article])
        >>> if result.success:
        ...     print(f"Connected to {result.profile_name}")
        ... else:
        ...     print(f"Failed: {result.error}")
    """
    settings = settings or get_settings()
    validate_on_connect = True

    # Resolve profile and build ORM
    try:
        if database_url is None and profile_name is None and not settings.database_url:
            profile_name = get_active_profile_name(settings)
        if profile_name is not None and database_url is None:
            validate_on_connect = load_db_config(settings.config_file).validate_on_connect
        orm = get_orm(profile_name=profile_name, database_url=database_url, settings=settings)
    except (ProfileNotFoundError, FileNotFoundError) as e:
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            error=str(e),
        )

    try:
        try:
            await _check_connection(orm)
        except (OSError, exc.SQLAlchemyError) as e:
            logger.error("connection check failed: %s", e)
            return ConnectionResult(
                success=False,
                profile_name=profile_name,
                error=f"Failed to connect to database: {e}",
            )

        record_types = list(record_types)
        if not validate_on_connect or not record_types:
            return ConnectionResult(success=True, profile_name=profile_name, schema_valid=True)

        for cls in record_types:
            orm.add_table(cls)
        validation = await orm.validate_tables()
    finally:
        await orm.close()

    if validation.valid:
        return ConnectionResult(
            success=True,
            profile_name=profile_name,
            schema_valid=True,
            schema_report=validation,
        )
    else:
        # Schema invalid - return report
        return ConnectionResult(
            success=False,
            profile_name=profile_name,
            schema_valid=False,
            schema_report=validation,
            error=f"Schema validation failed: {validation.error_count} errors",
        )
