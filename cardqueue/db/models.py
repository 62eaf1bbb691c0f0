"""Peewee ORM models for the queue store database."""

from __future__ import annotations

import peewee

from cardqueue.core.time_utils import utc_now

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    class Meta:
        database = database_proxy
        legacy_table_names = False


class QueueSlot(BaseModel):
    """One named slot of the key-value queue store; ``value`` is JSON text."""

    key = peewee.TextField(primary_key=True)
    value = peewee.TextField(null=True)
    updated_at = peewee.DateTimeField(default=utc_now)


ALL_MODELS: list[type[BaseModel]] = [QueueSlot]
