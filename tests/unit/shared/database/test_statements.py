"""Unit tests for SQL generation."""
from corelog.models.log import CORE_LOG
from shared.database import statements
from shared.database.table import Table


MEMBERSHIP = Table(
    name="membership",
    columns=("group_id", "user_id", "role"),
    primary_key=("group_id", "user_id"),
    schema="public",
)

TAGS = Table(name="tags", columns=("name",), primary_key=("name",))


def test_select_by_key_composite():
    assert statements.select_by_key(MEMBERSHIP) == (
        'SELECT "group_id", "user_id", "role" FROM "public"."membership" '
        'WHERE "group_id" = $1 AND "user_id" = $2 LIMIT 1'
    )


def test_select_all_has_no_ordering():
    assert statements.select_all(CORE_LOG) == 'SELECT "id", "log_content", "post_date" FROM "core_log"'


def test_delete_by_key_composite():
    assert statements.delete_by_key(MEMBERSHIP) == (
        'DELETE FROM "public"."membership" WHERE "group_id" = $1 AND "user_id" = $2'
    )


def test_upsert_targets_full_primary_key():
    assert statements.upsert_row(MEMBERSHIP) == (
        'INSERT INTO "public"."membership" ("group_id", "user_id", "role") VALUES ($1, $2, $3) '
        'ON CONFLICT ("group_id", "user_id") DO UPDATE SET "role" = $4'
    )


def test_upsert_key_only_table_does_nothing_on_conflict():
    assert statements.upsert_row(TAGS) == (
        'INSERT INTO "tags" ("name") VALUES ($1) ON CONFLICT ("name") DO NOTHING'
    )


def test_statements_are_cached_per_table():
    assert statements.insert_row(CORE_LOG) is statements.insert_row(CORE_LOG)
