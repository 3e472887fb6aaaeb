import threading
import uuid
from typing import Dict, Optional

from app.models.content import ContentSource


class ContentRegistry:
    """In-memory store of registered content sources, keyed by an opaque ref."""

    def __init__(self):
        self._items: Dict[str, ContentSource] = {}
        self._lock = threading.Lock()

    def register(self, content: ContentSource) -> str:
        content.ensure_usable()
        content_ref = uuid.uuid4().hex
        with self._lock:
            self._items[content_ref] = content
        return content_ref

    def get(self, content_ref: str) -> Optional[ContentSource]:
        with self._lock:
            return self._items.get(content_ref)
