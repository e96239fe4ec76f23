"""Unit tests for the image object store and the state snapshot."""
import threading
from concurrent.futures import ThreadPoolExecutor

from pbf_studio import store
from pbf_studio.models import StateSnapshot


class TestStateSnapshot:
    """Tests for the persisted snapshot row."""

    def test_concurrent_pushes_keep_every_entry(self, studio):
        """Test that parallel generations all land in the history."""
        barrier = threading.Barrier(6)

        def push(n):
            barrier.wait()
            store.push_history(f"img-{n}")

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = [pool.submit(push, n) for n in range(6)]
            for result in results:
                result.result()

        assert sorted(store.load_state().history) == [f"img-{n}" for n in range(6)]

    def test_save_prunes_dropped_images(self, studio):
        """Test that images the snapshot stops referencing are deleted."""
        keep = store.save_image("data:image/png;base64,AA==")
        drop = store.save_image("data:image/png;base64,AQ==")
        unrelated = store.save_image("data:image/png;base64,Ag==", "reference")
        store.save_state(StateSnapshot(history=[keep.id, drop.id], generated_image=drop.id))

        store.save_state(StateSnapshot(history=[keep.id], generated_image=keep.id))

        assert store.get_image(keep.id) is not None
        assert store.get_image(drop.id) is None
        assert store.get_image(unrelated.id) is not None

    def test_current_image_survives_trim(self, studio):
        """Test that the current image is kept even when cut from history."""
        store.save_image("data:image/png;base64,AA==", "current")
        history = [f"h{i}" for i in range(10)] + ["current"]

        saved = store.save_state(StateSnapshot(history=history, generated_image="current"))

        assert len(saved.history) == 10
        assert store.get_image("current") is not None
