"""
CSV Resource Importer

Loads an Azure Resource Graph CSV export into the catalog. Subscriptions,
resource groups and applications are created on first sight and looked up
through per-run caches afterwards. Malformed rows are skipped and counted;
database failures abort the run.
"""

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from techstock.models.inventory import DEFAULT_RELATION_TYPE
from techstock.modules.inventory.domain.catalog_store import (
    ApplicationStore,
    ResourceGroupStore,
    SubscriptionStore,
)
from techstock.modules.inventory.domain.resource_store import ResourceStore
from techstock.shared.core.config import get_settings
from techstock.shared.core.ops_metrics import IMPORT_ROWS_TOTAL
from techstock.shared.db.errors import translate_db_errors

logger = structlog.get_logger()

COL_NAME = "Name"
COL_TYPE = "Type"
COL_KIND = "kind"
COL_LOCATION = "Location"
COL_SUBSCRIPTION = "Subscription"
COL_RESOURCE_GROUP = "Resource group"
COL_TAGS = "Tags"
COL_EXTENDED_LOCATION = "extendedLocation"

APP_CODE_TAG = "AppID"
APP_NAME_TAG = "AppName"
OWNER_TAGS = ("AdminName", "AdminName1", "AdminName2")


class MalformedRowError(ValueError):
    pass


@dataclass
class ImportReport:
    processed: int = 0
    imported: int = 0
    skipped: int = 0


@dataclass
class ImportRun:
    """Name -> id caches valid for a single import run."""

    subscriptions: Dict[str, int] = field(default_factory=dict)
    resource_groups: Dict[Tuple[str, int], int] = field(default_factory=dict)
    applications: Dict[str, int] = field(default_factory=dict)
    report: ImportReport = field(default_factory=ImportReport)


def parse_tags(raw: Optional[str]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Parse the Tags column.

    Returns the JSON object as exported and a flattened string map in which
    non-string values are JSON-encoded and nulls are dropped.
    """
    raw = (raw or "").strip()
    if not raw or raw == "null":
        return {}, {}
    try:
        blob = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedRowError(f"Tags is not valid JSON: {exc.msg}") from exc
    if not isinstance(blob, dict):
        raise MalformedRowError("Tags is not a JSON object")

    tags: Dict[str, str] = {}
    for key, value in blob.items():
        if value is None:
            continue
        tags[key] = value if isinstance(value, str) else json.dumps(value)
    return blob, tags


def _optional(value: Optional[str], *nulls: str) -> Optional[str]:
    if value is None or value in nulls:
        return None
    return value


def _required(row: Mapping[str, Optional[str]], column: str) -> str:
    value = (row.get(column) or "").strip()
    if not value:
        raise MalformedRowError(f"missing {column}")
    return value


def owner_email_from(tags: Mapping[str, str]) -> Optional[str]:
    for key in OWNER_TAGS:
        value = tags.get(key)
        if value and "@" in value:
            return value
    return None


class CsvResourceImporter:
    def __init__(self, db: AsyncSession, progress_every: Optional[int] = None):
        self.db = db
        self.progress_every = progress_every or get_settings().IMPORT_PROGRESS_EVERY
        self.subscriptions = SubscriptionStore(db)
        self.groups = ResourceGroupStore(db)
        self.applications = ApplicationStore(db)
        self.resources = ResourceStore(db)

    async def import_file(self, path: Path) -> ImportReport:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"CSV file not found: {path}")
        logger.info("resource_import_started", path=str(path))
        with path.open(newline="", encoding="utf-8-sig") as handle:
            return await self.import_rows(csv.DictReader(handle))

    async def import_rows(self, rows: Iterable[Mapping[str, Optional[str]]]) -> ImportReport:
        run = ImportRun()
        for row in rows:
            run.report.processed += 1
            try:
                await self._import_row(run, row)
            except MalformedRowError as exc:
                run.report.skipped += 1
                IMPORT_ROWS_TOTAL.labels(outcome="skipped").inc()
                logger.warning(
                    "resource_import_row_skipped",
                    row=run.report.processed,
                    reason=str(exc),
                )
            else:
                run.report.imported += 1
                IMPORT_ROWS_TOTAL.labels(outcome="imported").inc()

            if run.report.processed % self.progress_every == 0:
                with translate_db_errors("commit import batch"):
                    await self.db.commit()
                logger.info("resource_import_progress", processed=run.report.processed)

        with translate_db_errors("commit import batch"):
            await self.db.commit()
        logger.info(
            "resource_import_completed",
            processed=run.report.processed,
            imported=run.report.imported,
            skipped=run.report.skipped,
        )
        return run.report

    async def _import_row(self, run: ImportRun, row: Mapping[str, Optional[str]]) -> None:
        # Validate everything before the first write.
        name = _required(row, COL_NAME)
        resource_type = _required(row, COL_TYPE)
        location = _required(row, COL_LOCATION)
        subscription_name = _required(row, COL_SUBSCRIPTION)
        group_name = _required(row, COL_RESOURCE_GROUP)
        blob, tags = parse_tags(row.get(COL_TAGS))

        subscription_id = await self._subscription_id(run, subscription_name)
        group_id = await self._resource_group_id(run, group_name, subscription_id)
        application_id = None
        if tags.get(APP_CODE_TAG):
            application_id = await self._application_id(run, tags)

        resource = await self.resources.create(
            {
                "name": name,
                "resource_type": resource_type,
                "kind": _optional(row.get(COL_KIND), ""),
                "location": location,
                "subscription_id": subscription_id,
                "resource_group_id": group_id,
                "tags": tags,
                "tags_json": blob,
                "extended_location": _optional(row.get(COL_EXTENDED_LOCATION), "null"),
                "vendor": tags.get("Vendor"),
                "environment": tags.get("Environment"),
                "provisioner": tags.get("Provisioner"),
            }
        )
        if application_id is not None:
            await self.resources.link_application(
                resource.id, application_id, DEFAULT_RELATION_TYPE
            )

    async def _subscription_id(self, run: ImportRun, name: str) -> int:
        cached = run.subscriptions.get(name)
        if cached is not None:
            return cached
        subscription = await self.subscriptions.get_by_name(name)
        if subscription is None:
            subscription = await self.subscriptions.create({"name": name})
            logger.info("subscription_created", subscription_id=subscription.id, source="import")
        run.subscriptions[name] = subscription.id
        return subscription.id

    async def _resource_group_id(self, run: ImportRun, name: str, subscription_id: int) -> int:
        key = (name, subscription_id)
        cached = run.resource_groups.get(key)
        if cached is not None:
            return cached
        group = await self.groups.get_by_name(subscription_id, name)
        if group is None:
            group = await self.groups.create({"name": name, "subscription_id": subscription_id})
        run.resource_groups[key] = group.id
        return group.id

    async def _application_id(self, run: ImportRun, tags: Mapping[str, str]) -> int:
        code = tags[APP_CODE_TAG]
        cached = run.applications.get(code)
        if cached is not None:
            return cached
        application = await self.applications.get_by_code(code)
        if application is None:
            application = await self.applications.create(
                {
                    "code": code,
                    "name": tags.get(APP_NAME_TAG),
                    "owner_email": owner_email_from(tags),
                }
            )
        run.applications[code] = application.id
        return application.id
