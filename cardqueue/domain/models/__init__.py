from cardqueue.domain.models.pending_item import PendingItem, PendingItemKind, new_item_id

__all__ = ["PendingItem", "PendingItemKind", "new_item_id"]
