import csv
import json

import pytest
from sqlalchemy import select

from techstock.models.inventory import (
    Application,
    Resource,
    ResourceApplicationMap,
    ResourceGroup,
    ResourceTag,
    Subscription,
)
from techstock.modules.inventory.domain.importer import (
    CsvResourceImporter,
    MalformedRowError,
    owner_email_from,
    parse_tags,
)

HEADER = [
    "Name",
    "Type",
    "kind",
    "Location",
    "Subscription",
    "Resource group",
    "Tags",
    "extendedLocation",
]


def _row(name, tags="null", subscription="Prod", group="rg-web", kind="", ext="null"):
    return dict(
        zip(
            HEADER,
            [name, "Virtual machine", kind, "westeurope", subscription, group, tags, ext],
        )
    )


def test_parse_tags_handles_null_and_empty():
    assert parse_tags("null") == ({}, {})
    assert parse_tags("") == ({}, {})
    assert parse_tags(None) == ({}, {})


def test_parse_tags_stringifies_values_and_drops_nulls():
    blob, tags = parse_tags('{"Env": "prod", "Cores": 4, "Gone": null, "Flag": true}')
    assert blob["Gone"] is None
    assert tags == {"Env": "prod", "Cores": "4", "Flag": "true"}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"'])
def test_parse_tags_rejects_non_objects(raw):
    with pytest.raises(MalformedRowError):
        parse_tags(raw)


def test_owner_email_prefers_first_valid_admin_tag():
    assert owner_email_from({"AdminName": "Jane", "AdminName1": "jane@example.com"}) == (
        "jane@example.com"
    )
    assert owner_email_from({"AdminName": "Jane"}) is None


@pytest.mark.asyncio
async def test_import_rows_builds_catalog(db_session):
    tags = json.dumps(
        {
            "AppID": "AP2411",
            "AppName": "Billing",
            "AdminName": "ops@example.com",
            "Environment": "PRD",
            "Vendor": "Microsoft",
            "Provisioner": "Terraform",
        }
    )
    rows = [
        _row("vm-1", tags=tags, kind="", ext="null"),
        _row("vm-2", tags=tags, kind="vmss", ext="edge-zone"),
        _row("vm-3", group="rg-data"),
    ]

    report = await CsvResourceImporter(db_session, progress_every=2).import_rows(rows)

    assert (report.processed, report.imported, report.skipped) == (3, 3, 0)
    assert len((await db_session.execute(select(Subscription))).scalars().all()) == 1
    groups = (await db_session.execute(select(ResourceGroup))).scalars().all()
    assert sorted(g.name for g in groups) == ["rg-data", "rg-web"]

    apps = (await db_session.execute(select(Application))).scalars().all()
    assert [(a.code, a.name, a.owner_email) for a in apps] == [
        ("AP2411", "Billing", "ops@example.com")
    ]

    vm1 = (await db_session.execute(select(Resource).where(Resource.name == "vm-1"))).scalar_one()
    assert vm1.kind is None
    assert vm1.extended_location is None
    assert (vm1.environment, vm1.vendor, vm1.provisioner) == ("PRD", "Microsoft", "Terraform")
    vm2 = (await db_session.execute(select(Resource).where(Resource.name == "vm-2"))).scalar_one()
    assert vm2.kind == "vmss"
    assert vm2.extended_location == "edge-zone"

    links = (await db_session.execute(select(ResourceApplicationMap))).scalars().all()
    assert len(links) == 2
    assert {link.relation_type for link in links} == {"uses"}

    tag_rows = (
        await db_session.execute(select(ResourceTag).where(ResourceTag.resource_id == vm1.id))
    ).scalars().all()
    assert {t.key for t in tag_rows} == {
        "AppID",
        "AppName",
        "AdminName",
        "Environment",
        "Vendor",
        "Provisioner",
    }


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped_and_counted(db_session):
    rows = [
        _row("ok-1"),
        _row("bad-json", tags="{oops"),
        _row("", tags="null"),
        _row("ok-2", subscription=""),
        _row("ok-3"),
    ]

    report = await CsvResourceImporter(db_session).import_rows(rows)

    assert (report.processed, report.imported, report.skipped) == (5, 2, 3)
    names = (await db_session.execute(select(Resource.name).order_by(Resource.name))).scalars().all()
    assert names == ["ok-1", "ok-3"]


@pytest.mark.asyncio
async def test_import_reuses_existing_subscription(db_session, factory):
    existing = await factory.subscription(name="Prod")
    await db_session.commit()

    await CsvResourceImporter(db_session).import_rows([_row("vm-1")])

    subs = (await db_session.execute(select(Subscription))).scalars().all()
    assert [s.id for s in subs] == [existing.id]


@pytest.mark.asyncio
async def test_import_file_reads_csv(db_session, tmp_path):
    path = tmp_path / "export.csv"
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=HEADER)
        writer.writeheader()
        writer.writerow(_row("vm-a", tags='{"Env": "dev"}'))
        writer.writerow(_row("vm-b"))

    report = await CsvResourceImporter(db_session).import_file(path)

    assert report.imported == 2
    vm_a = (await db_session.execute(select(Resource).where(Resource.name == "vm-a"))).scalar_one()
    assert vm_a.tags_json == {"Env": "dev"}


@pytest.mark.asyncio
async def test_import_file_missing_path(db_session, tmp_path):
    with pytest.raises(FileNotFoundError):
        await CsvResourceImporter(db_session).import_file(tmp_path / "nope.csv")
