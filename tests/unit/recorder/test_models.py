"""
Tests for the recording data model.
"""

import json

import pytest

from action_recorder.exceptions import RecordingSealedError
from action_recorder.recorder.models import (
    Action,
    ActionKind,
    AssertionType,
    ElementSnapshot,
    FrameDescriptor,
    Locator,
    Recording,
    ShadowHostDescriptor,
)


def _click(**kwargs):
    defaults = dict(
        kind=ActionKind.CLICK,
        timestamp=1_700_000_000_000,
        locator=Locator(primary='//button[@id="go"]', full_path="/html[1]/body[1]/button[1]"),
        element=ElementSnapshot(tag="button", id="go", class_list=("btn", "primary"), text="Go"),
        description='Clicked the "Go" button',
    )
    defaults.update(kwargs)
    return Action(**defaults)


class TestAction:
    """Test the canonical dictionary form of actions."""

    def test_top_level_click(self):
        data = _click().to_dict()

        assert data["type"] == "click"
        assert data["xpath"] == '//button[@id="go"]'
        assert data["fullXPath"] == "/html[1]/body[1]/button[1]"
        assert data["iframe"] is None
        assert data["shadow"] is None
        assert data["frameIndex"] is None
        assert data["element"]["className"] == "btn primary"
        assert "value" not in data
        assert data["timestamp"] == 1_700_000_000_000

    def test_context_serialization(self):
        action = _click(
            frame_context=(FrameDescriptor(name="f1", index=0, selector='iframe[name="f1"]'),),
            frame_index=0,
            shadow_context=(
                ShadowHostDescriptor(
                    host_locator='//my-app[@id="app"]',
                    host_tag="my-app",
                    inner_path="//button",
                    inner_selector="button",
                ),
            ),
        )
        data = action.to_dict()

        assert action.in_iframe and action.in_shadow_dom
        assert data["iframe"][0]["selector"] == 'iframe[name="f1"]'
        assert data["shadow"][0] == {
            "hostXPath": '//my-app[@id="app"]',
            "hostTag": "my-app",
            "hostId": None,
            "hostClass": None,
            "innerXPath": "//button",
            "innerSelector": "button",
            "shadowMode": "open",
        }

    def test_payload_fields(self):
        data = _click(
            kind=ActionKind.ASSERTION,
            assertion_type=AssertionType.TEXT,
            expected_value="Total",
            frame_id=3,
            url="https://shop.test/",
        ).to_dict()
        assert data["assertionType"] == "text"
        assert data["expectedValue"] == "Total"
        assert data["frameId"] == 3
        assert data["url"] == "https://shop.test/"

    def test_from_dict(self):
        action = _click(
            kind=ActionKind.SELECT,
            value="l",
            option_label="Large",
            frame_context=(FrameDescriptor(index=0, selector="(//iframe)[1]", cross_origin_blocked=True, note="x"),),
        )
        assert Action.from_dict(json.loads(json.dumps(action.to_dict()))) == action

    def test_page_marker_has_no_locator(self):
        marker = Action(kind=ActionKind.PAGE_MARKER, timestamp=1, page_name="Cart", description="Cart")
        data = marker.to_dict()
        assert data["xpath"] is None
        assert data["fullXPath"] is None
        assert Action.from_dict(data).locator is None

    def test_actions_are_immutable(self):
        with pytest.raises(AttributeError):
            _click().value = "x"


class TestDescriptors:
    """Test frame and shadow descriptors."""

    def test_blocked_frame(self):
        data = FrameDescriptor(index=1, selector="(//iframe)[2]", cross_origin_blocked=True, note="blocked").to_dict()
        assert data["crossOrigin"] is True
        assert data["note"] == "blocked"

    def test_unblocked_frame_omits_flag(self):
        assert "crossOrigin" not in FrameDescriptor(name="a").to_dict()

    def test_legacy_message_key(self):
        assert FrameDescriptor.from_dict({"message": "old note"}).note == "old note"

    def test_closed_shadow(self):
        host = ShadowHostDescriptor(host_locator="//x", host_tag="x", inner_path="//y", mode="closed")
        assert host.is_closed


class TestRecording:
    """Test the append-only recording."""

    def test_append_and_seal(self):
        recording = Recording(id="rec_1", name="Test", start_time=1000)
        recording.append(_click())
        recording.seal(2000)

        assert len(recording) == 1
        assert recording.sealed
        with pytest.raises(RecordingSealedError):
            recording.append(_click())

    def test_seal_is_final(self):
        recording = Recording(id="rec_1", name="Test")
        recording.seal(2000)
        recording.seal(3000)
        assert recording.end_time == 2000

    def test_actions_view_is_read_only(self):
        recording = Recording(id="rec_1", name="Test")
        recording.append(_click())
        assert isinstance(recording.actions, tuple)

    def test_page_markers(self):
        recording = Recording(id="rec_1", name="Test")
        recording.append(_click())
        recording.append(Action(kind=ActionKind.PAGE_MARKER, timestamp=2, page_name="Cart"))
        assert [m.page_name for m in recording.page_markers] == ["Cart"]

    def test_json_round_trip_seals(self):
        recording = Recording(id="rec_1", name="Test", url="https://shop.test/", start_time=1000)
        recording.append(_click())
        recording.seal(5000)

        restored = Recording.from_json(recording.to_json())

        assert restored.sealed
        assert restored.end_time == 5000
        assert restored.actions == recording.actions

    def test_open_recording_from_dict(self):
        restored = Recording.from_dict({"id": "rec_2", "name": "Open", "actions": []})
        assert not restored.sealed
