"""Notification configuration loader."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .config import Settings, get_settings
from .events import RecordKind
from .throttle import DEFAULT_THROTTLE_MINUTES

logger = logging.getLogger(__name__)


@dataclass
class CollectionConfig:
    """How a collection maps onto a record kind."""

    kind: RecordKind
    source: str
    label: str


def default_collections(settings: Settings) -> dict[str, CollectionConfig]:
    """Build the collection mapping from settings."""
    return {
        settings.application_forms_collection_id: CollectionConfig(
            RecordKind.APPLICATION, "applications", "Government Application"
        ),
        settings.national_id_collection_id: CollectionConfig(
            RecordKind.APPLICATION, "nationalIds", "National ID Application"
        ),
        settings.business_collection_id: CollectionConfig(
            RecordKind.APPLICATION, "businesses", "Business Registration"
        ),
        settings.gun_license_collection_id: CollectionConfig(
            RecordKind.APPLICATION, "gunLicenses", "Gun License Application"
        ),
        settings.pay_stubs_collection_id: CollectionConfig(
            RecordKind.PAY_STUB, "payStubs", "Pay Stub"
        ),
    }


@dataclass
class NotificationConfig:
    """Notification configuration, built once at startup."""

    throttle_minutes: int = DEFAULT_THROTTLE_MINUTES
    dry_run: bool = False
    kinds: dict = field(
        default_factory=lambda: {
            RecordKind.APPLICATION: True,
            RecordKind.PAY_STUB: True,
        }
    )
    collections: dict = field(default_factory=dict)
    database_id: Optional[str] = "main"
    employees_collection_id: str = "employees"
    portal_base_url: str = ""

    def is_kind_enabled(self, kind: RecordKind) -> bool:
        """Check if notifications are enabled for a record kind."""
        return self.kinds.get(kind, False)

    def get_collection(self, collection_id: Optional[str]) -> Optional[CollectionConfig]:
        """Look up the mapping for a collection id."""
        if not collection_id:
            return None
        return self.collections.get(collection_id)

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationConfig":
        return cls(
            throttle_minutes=settings.notify_throttle_minutes,
            dry_run=settings.dry_run,
            kinds={
                RecordKind.APPLICATION: settings.enable_application_notifications,
                RecordKind.PAY_STUB: settings.enable_pay_stub_notifications,
            },
            collections=default_collections(settings),
            database_id=settings.appwrite_database_id or None,
            employees_collection_id=settings.employees_collection_id,
            portal_base_url=settings.portal_base_url,
        )


def _apply_overrides(config: NotificationConfig, data: dict) -> None:
    if "throttle_minutes" in data:
        config.throttle_minutes = int(data["throttle_minutes"])
    if "dry_run" in data:
        config.dry_run = bool(data["dry_run"])
    if "portal_base_url" in data:
        config.portal_base_url = str(data["portal_base_url"] or "")
    for kind_name, enabled in (data.get("kinds") or {}).items():
        try:
            config.kinds[RecordKind(kind_name)] = bool(enabled)
        except ValueError:
            logger.warning(f"Ignoring unknown kind in config: {kind_name}")
    for collection_id, entry in (data.get("collections") or {}).items():
        entry = entry or {}
        try:
            kind = RecordKind(entry.get("kind", "application"))
        except ValueError:
            logger.warning(f"Ignoring collection {collection_id}: unknown kind")
            continue
        config.collections[str(collection_id)] = CollectionConfig(
            kind=kind,
            source=str(entry.get("source", collection_id)),
            label=str(entry.get("label", collection_id)),
        )


def load_notification_config(
    config_path: Optional[Path] = None, settings: Optional[Settings] = None
) -> NotificationConfig:
    """Load notification config from settings plus an optional YAML file.

    Args:
        config_path: Path to config file. If None, uses the settings path or
            the default location.
        settings: Settings to build from. If None, uses cached settings.

    Returns:
        NotificationConfig with file values layered over settings.
    """
    settings = settings or get_settings()
    if config_path is None:
        if settings.notification_config_path:
            config_path = Path(settings.notification_config_path)
        else:
            # Default location relative to project root
            config_path = (
                Path(__file__).parent.parent.parent / "config" / "notifications.yaml"
            )

    config = NotificationConfig.from_settings(settings)

    if not config_path.exists():
        logger.info(f"Config file not found at {config_path}, using environment")
        return config

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        _apply_overrides(config, data)
        logger.info(f"Loaded notification config from {config_path}")
        return config

    except (OSError, yaml.YAMLError, TypeError, ValueError, AttributeError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return NotificationConfig.from_settings(settings)


# Global config instance (loaded on first use)
_config: Optional[NotificationConfig] = None


def get_notification_config() -> NotificationConfig:
    """Get the global notification config (lazy loaded)."""
    global _config
    if _config is None:
        _config = load_notification_config()
    return _config
