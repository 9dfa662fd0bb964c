"""Tests for payload, stage and application state models."""

import base64

import pytest
from pydantic import ValidationError

from fitting_room.catalog import AVAILABLE_SIZES, PRODUCTS, get_product
from fitting_room.errors import ContentRejected, DecodeError, ErrorKind
from fitting_room.models import ImagePayload, SizeCode, Stage, TryOnResult, TryOnState

from conftest import make_image_bytes


class TestImagePayload:

    def test_data_uri_round_trip_keeps_mime(self):
        payload = ImagePayload(data=make_image_bytes(), mime_type="image/png")

        uri = payload.to_data_uri()
        parsed = ImagePayload.from_data_uri(uri)

        assert uri.startswith("data:image/png;base64,")
        assert parsed == payload

    def test_bare_base64_sniffs_mime(self):
        jpeg = make_image_bytes(fmt="JPEG")

        parsed = ImagePayload.from_data_uri(base64.b64encode(jpeg).decode())

        assert parsed.data == jpeg
        assert parsed.mime_type == "image/jpeg"

    @pytest.mark.parametrize("value", [
        "data:image/png,rawbytes",
        "data:image/png;base64,@@@not-base64@@@",
        "data:image/png;base64,",
        "%%%",
    ])
    def test_malformed_input_is_decode_error(self, value):
        with pytest.raises(DecodeError):
            ImagePayload.from_data_uri(value)

    def test_payload_is_immutable(self):
        payload = ImagePayload(data=b"abc", mime_type="image/png")

        with pytest.raises(ValidationError):
            payload.data = b"xyz"


class TestStage:

    def test_labels(self):
        assert Stage.FETCHING_PRODUCT.label == "Loading the outfit..."
        assert Stage.ESTIMATING_SIZE.label == "Analysing proportions..."
        assert Stage.RENDERING.label == "Rendering photo realism..."
        assert Stage.IDLE.label == ""

    def test_running_and_terminal(self):
        running = [stage for stage in Stage if stage.is_running]
        terminal = [stage for stage in Stage if stage.is_terminal]

        assert running == [Stage.FETCHING_PRODUCT, Stage.ESTIMATING_SIZE, Stage.RENDERING]
        assert terminal == [Stage.SUCCEEDED, Stage.FAILED]


class TestCatalog:

    def test_three_products_with_unique_ids(self):
        assert len(PRODUCTS) == 3
        assert len({product.id for product in PRODUCTS}) == 3

    def test_lookup(self):
        assert get_product("sculpt-black").name == "Sculpt Set Black"
        assert get_product("unknown") is None

    def test_sizes_in_scan_order(self):
        assert AVAILABLE_SIZES == ["XS", "S", "M", "L", "XL", "XXL"]


class TestTryOnState:

    @pytest.fixture
    def state(self):
        return TryOnState()

    @pytest.fixture
    def photo(self):
        return ImagePayload(data=make_image_bytes(), mime_type="image/png")

    def test_initial_snapshot(self, state):
        snapshot = state.snapshot()

        assert snapshot["step"] == 1
        assert snapshot["stage"] == "idle"
        assert snapshot["is_loading"] is False
        assert snapshot["has_photo"] is False
        assert snapshot["result_image"] is None
        assert snapshot["error"] is None

    def test_ready_needs_both_inputs(self, state, photo):
        state.select_product(PRODUCTS[0])
        assert state.step == 2
        assert not state.ready

        state.set_photo(photo)
        assert state.ready

        state.clear_photo()
        assert not state.ready

    def test_attempt_is_loading_until_recorded(self, state, photo):
        state.select_product(PRODUCTS[0])
        state.set_photo(photo)

        state.begin_attempt()
        assert state.step == 3
        assert state.is_loading

        state.record_result(TryOnResult(image=photo, size=SizeCode.XL))
        snapshot = state.snapshot()

        assert not state.is_loading
        assert snapshot["stage"] == "succeeded"
        assert snapshot["recommended_size"] == "XL"
        assert snapshot["result_image"] == photo.to_data_uri()

    def test_error_snapshot(self, state):
        state.begin_attempt()
        state.record_error(ContentRejected())

        snapshot = state.snapshot()

        assert snapshot["stage"] == "failed"
        assert snapshot["stage_label"] == "Processing failed."
        assert snapshot["error"]["kind"] == ErrorKind.CONTENT_REJECTED.value
        assert "neutral clothing" in snapshot["error"]["message"]

    def test_reset_clears_everything(self, state, photo):
        state.select_product(PRODUCTS[1])
        state.set_photo(photo)
        state.begin_attempt()
        state.record_result(TryOnResult(image=photo, size=SizeCode.M))

        state.reset()

        assert state.step == 1
        assert state.user_image is None
        assert state.selected_product is None
        assert state.result is None
        assert state.stage == Stage.IDLE
        assert state.snapshot()["recommended_size"] is None
