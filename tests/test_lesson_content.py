from types import SimpleNamespace

import pytest

from app.utils.lesson_content import (
    ContentAddFlow,
    FlowState,
    InvalidTransition,
    Reorder,
    array_move,
    dense_orders,
    derive_original_name,
    find_duplicate,
)

LEGACY_URL = "/uploads/audio/123e4567-e89b-12d3-a456-426614174000-lesson1.mp3"


def item(id, title="", description="", original_name=None, url=None, order=1):
    return SimpleNamespace(
        id=id,
        title=title,
        description=description,
        original_name=original_name,
        url=url,
        order=order,
    )


def test_array_move_forward_and_back():
    assert array_move(["a", "b", "c"], 0, 2) == ["b", "c", "a"]
    assert array_move(["a", "b", "c"], 2, 0) == ["c", "a", "b"]
    assert array_move(["a", "b", "c"], 1, 1) == ["a", "b", "c"]


def test_array_move_rejects_out_of_range():
    with pytest.raises(ValueError):
        array_move(["a", "b"], 0, 2)
    with pytest.raises(ValueError):
        array_move([], 0, 0)


def test_array_move_leaves_input_untouched():
    items = [1, 2, 3]
    array_move(items, 0, 2)
    assert items == [1, 2, 3]


def test_drag_first_item_to_the_end():
    reorder = Reorder([10, 11, 12])
    reorder.move(0, 2)

    assert reorder.pending_orders() == [(11, 1), (12, 2), (10, 3)]


def test_dense_orders_are_one_based():
    assert dense_orders([]) == []
    assert dense_orders([7, 3]) == [(7, 1), (3, 2)]


def test_reorder_revert_restores_last_committed_order():
    reorder = Reorder([1, 2, 3])
    reorder.move(2, 0)
    reorder.commit()
    reorder.move(0, 1)

    assert reorder.revert() == [3, 1, 2]
    assert reorder.committed == [3, 1, 2]


def test_reorder_apply_ids_must_be_a_permutation():
    reorder = Reorder([1, 2, 3])

    assert reorder.apply_ids([3, 2, 1]) == [3, 2, 1]
    with pytest.raises(ValueError):
        reorder.apply_ids([1, 2])
    with pytest.raises(ValueError):
        reorder.apply_ids([1, 2, 2])
    with pytest.raises(ValueError):
        reorder.apply_ids([1, 2, 4])


def test_derive_original_name_strips_uuid_prefix():
    assert derive_original_name(LEGACY_URL) == "lesson1.mp3"
    assert derive_original_name(
        "https://cdn.example.com/uploads/docs/123e4567-e89b-12d3-a456-426614174000-my-notes%20v2.pdf"
    ) == "my-notes v2.pdf"


@pytest.mark.parametrize("url", [None, "", "/uploads/audio/lesson1.mp3", "/uploads/audio/a-b-c.mp3"])
def test_derive_original_name_ignores_foreign_names(url):
    assert derive_original_name(url) is None


def test_find_duplicate_prefers_stored_original_name():
    stored = item(1, original_name="lesson1.mp3", url="/uploads/audio/x.mp3")
    other = item(2, original_name="lesson2.mp3")

    assert find_duplicate([other, stored], "lesson1.mp3") is stored
    assert find_duplicate([other, stored], "lesson3.mp3") is None
    assert find_duplicate([other, stored], "") is None


def test_selecting_an_existing_filename_offers_update_in_place():
    existing = item(5, title="Dialogue 1", description="Slow speed", original_name="lesson1.mp3")
    flow = ContentAddFlow([existing], "audio")

    assert flow.choose_file("lesson1.mp3") is existing
    assert flow.state == FlowState.DUPLICATE_DETECTED

    flow.confirm()
    assert flow.state == FlowState.OVERWRITE_CONFIRMED
    assert flow.title == "Dialogue 1"
    assert flow.description == "Slow speed"

    submission = flow.submit()
    assert submission.overwrite_id == 5
    assert submission.order is None
    assert submission.title == "Dialogue 1"
    assert flow.is_update


def test_legacy_item_is_detected_through_its_url():
    legacy = item(9, original_name=None, url=LEGACY_URL)
    flow = ContentAddFlow([legacy], "audio")

    assert flow.choose_file("lesson1.mp3") is legacy
    assert flow.state == FlowState.DUPLICATE_DETECTED


def test_cancel_clears_the_chosen_file():
    flow = ContentAddFlow([item(1, original_name="a.pdf")], "doc")
    flow.choose_file("a.pdf")
    flow.cancel()

    assert flow.state == FlowState.OVERWRITE_CANCELLED
    assert flow.filename is None
    with pytest.raises(InvalidTransition):
        flow.submit()

    assert flow.choose_file("b.pdf") is None
    assert flow.state == FlowState.FILE_CHOSEN


def test_new_file_gets_the_next_order():
    flow = ContentAddFlow([item(1), item(2, order=2)], "doc")
    flow.choose_file("new.pdf")

    submission = flow.submit(title="Worksheet")
    assert submission.overwrite_id is None
    assert submission.order == 3
    assert submission.title == "Worksheet"

    flow.finish()
    assert flow.state == FlowState.IDLE


def test_failed_submit_returns_to_previous_state():
    flow = ContentAddFlow([item(1, original_name="a.mp3")], "audio")
    flow.choose_file("a.mp3")
    flow.confirm()
    flow.submit(title="Edited")
    flow.fail()

    assert flow.state == FlowState.OVERWRITE_CONFIRMED
    assert flow.title == "Edited"
    assert flow.overwrite_id == 1


def test_video_flow_has_no_file_step():
    flow = ContentAddFlow([], "video")

    with pytest.raises(InvalidTransition):
        flow.choose_file("clip.mp4")

    submission = flow.submit(title="Intro")
    assert submission.order == 1
    assert submission.filename is None


def test_confirm_requires_a_duplicate():
    flow = ContentAddFlow([], "audio")
    flow.choose_file("a.mp3")

    with pytest.raises(InvalidTransition):
        flow.confirm()
