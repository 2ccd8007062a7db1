import pytest

from atlasfeed.db import ItemQuery, PostgresStore
from atlasfeed.db.postgres import _item_where

from .helpers import NOW


def test_item_where_scopes_section_and_source_type():
    where, params = _item_where(
        ItemQuery(since=NOW, field="published_at", section="tech", exclude_source_type="discovery")
    )
    assert where == "i.published_at >= %s AND i.section = %s AND s.type <> %s"
    assert params == [NOW, "tech", "discovery"]


def test_item_query_rejects_other_columns():
    with pytest.raises(ValueError):
        ItemQuery(since=NOW, field="title; DROP TABLE items")


async def test_update_source_rejects_unknown_columns():
    store = PostgresStore(pool=None)
    with pytest.raises(ValueError):
        await store.update_source(1, url="https://elsewhere.example")
