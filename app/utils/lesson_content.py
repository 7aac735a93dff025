"""
Ordering and duplicate-upload helpers for the lesson content editor.

Nothing in here touches the database: routes load the lesson's contents,
run them through these helpers, and persist the result in one transaction.
"""

from collections import namedtuple
from enum import Enum
from urllib.parse import unquote, urlparse

# Stored uploads are named "{uuid4}-{original name}": 36 chars + separator
STORED_NAME_PREFIX_LENGTH = 37
# 5 hyphen-separated uuid groups plus at least one for the filename
STORED_NAME_MIN_PARTS = 6

FILE_CONTENT_TYPES = ("audio", "doc")


class InvalidTransition(ValueError):
    pass


def array_move(items, old_index, new_index):
    """Return a copy of ``items`` with the element at ``old_index`` moved to ``new_index``."""
    items = list(items)
    size = len(items)
    if not (0 <= old_index < size and 0 <= new_index < size):
        raise ValueError(f"Cannot move index {old_index} to {new_index} in a list of {size}")

    items.insert(new_index, items.pop(old_index))
    return items


def dense_orders(ids):
    """Pair every id with its 1-based display position."""
    return [(item_id, position + 1) for position, item_id in enumerate(ids)]


def derive_original_name(url):
    """
    Recover the uploaded filename from a legacy storage URL.

    Only used for rows created before ``original_name`` was stored.
    Returns None when the last path segment does not look like
    "{uuid4}-{filename}".
    """
    if not url:
        return None

    segment = urlparse(url).path.rstrip("/").rsplit("/", 1)[-1]
    if len(segment.split("-")) < STORED_NAME_MIN_PARTS:
        return None

    name = unquote(segment[STORED_NAME_PREFIX_LENGTH:])
    return name or None


def find_duplicate(contents, filename):
    """Return the first content item that already holds a file called ``filename``."""
    if not filename:
        return None

    for item in contents:
        if item.original_name:
            if item.original_name == filename:
                return item
        elif derive_original_name(item.url) == filename:
            return item
    return None


class FlowState(str, Enum):
    IDLE = "idle"
    FILE_CHOSEN = "file_chosen"
    DUPLICATE_DETECTED = "duplicate_detected"
    OVERWRITE_CONFIRMED = "overwrite_confirmed"
    OVERWRITE_CANCELLED = "overwrite_cancelled"
    SUBMITTING = "submitting"


Submission = namedtuple(
    "Submission",
    ["content_type", "overwrite_id", "title", "description", "filename", "order"]
)


class ContentAddFlow:
    """
    One "add content" session of the lesson editor.

    Choosing a file whose name matches an existing item moves the flow to
    DUPLICATE_DETECTED; the admin then confirms (update the existing row in
    place) or cancels (drop the chosen file). A failed submit puts the flow
    back where it was before submitting so the admin can retry.
    """

    def __init__(self, existing, content_type):
        self.existing = list(existing)
        self.content_type = content_type
        self.state = FlowState.IDLE
        self._reset()
        self._resume_state = None

    def _reset(self):
        self.filename = None
        self.duplicate = None
        self.overwrite_id = None
        self.title = ""
        self.description = ""

    def _expect(self, *states):
        if self.state not in states:
            raise InvalidTransition(f"Cannot do that while {self.state.value}")

    @property
    def is_update(self):
        return self.overwrite_id is not None

    def choose_file(self, filename):
        if self.content_type not in FILE_CONTENT_TYPES:
            raise InvalidTransition(f"{self.content_type} content has no file")
        self._expect(FlowState.IDLE, FlowState.FILE_CHOSEN, FlowState.OVERWRITE_CANCELLED)

        self._reset()
        self.filename = filename
        self.state = FlowState.FILE_CHOSEN

        self.duplicate = find_duplicate(self.existing, filename)
        if self.duplicate is not None:
            self.state = FlowState.DUPLICATE_DETECTED
        return self.duplicate

    def confirm(self):
        self._expect(FlowState.DUPLICATE_DETECTED)
        self.overwrite_id = self.duplicate.id
        self.title = self.duplicate.title or ""
        self.description = self.duplicate.description or ""
        self.state = FlowState.OVERWRITE_CONFIRMED

    def cancel(self):
        self._expect(FlowState.DUPLICATE_DETECTED)
        self._reset()
        self.state = FlowState.OVERWRITE_CANCELLED

    def submit(self, title=None, description=None):
        if self.content_type in FILE_CONTENT_TYPES:
            self._expect(FlowState.FILE_CHOSEN, FlowState.OVERWRITE_CONFIRMED)
        else:
            self._expect(FlowState.IDLE)

        # form fields win over the pre-filled values
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description

        self._resume_state = self.state
        self.state = FlowState.SUBMITTING

        return Submission(
            content_type=self.content_type,
            overwrite_id=self.overwrite_id,
            title=self.title,
            description=self.description,
            filename=self.filename,
            order=None if self.is_update else len(self.existing) + 1,
        )

    def finish(self):
        self._expect(FlowState.SUBMITTING)
        self._reset()
        self._resume_state = None
        self.state = FlowState.IDLE

    def fail(self):
        self._expect(FlowState.SUBMITTING)
        self.state = self._resume_state
        self._resume_state = None


class Reorder:
    """
    Drag-and-drop ordering applied optimistically.

    ``items`` reflects the drag immediately; ``commit`` accepts it once the
    batch update succeeded and ``revert`` goes back to the last committed
    order when it did not.
    """

    def __init__(self, ids):
        self._committed = list(ids)
        self.items = list(ids)

    def move(self, old_index, new_index):
        self.items = array_move(self.items, old_index, new_index)
        return self.items

    def apply_ids(self, ids):
        ids = list(ids)
        if len(ids) != len(self._committed) or set(ids) != set(self._committed):
            raise ValueError("Order must list every item exactly once")
        self.items = ids
        return self.items

    def pending_orders(self):
        return dense_orders(self.items)

    def commit(self):
        self._committed = list(self.items)

    def revert(self):
        self.items = list(self._committed)
        return self.items

    @property
    def committed(self):
        return list(self._committed)
