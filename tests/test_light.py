"""
Sketch-backed trust tracker tests.

Exact-equality assertions assume no two keys collide in all ten rows, which
is negligibly unlikely at these widths.
"""

import numpy as np
import pytest

from decentrust.core.numeric import Update
from decentrust.core.sketch import CountMinSketch
from decentrust.exceptions import NumericBoundError, UnsupportedOperationError
from decentrust.reputation import FixedWidthBucketizer, LightHonestPeer, RangeBucketizer

ERROR_BOUND = 10.0
PROBABILITY = 0.0001
MAX_ENTRIES = 3000.0


@pytest.mark.unit
class TestConstruction:
    """Sizing and memory footprint."""

    def test_dimensions_from_bounds(self):
        hp = LightHonestPeer.from_bounds(50.0, 0.0001, 3000.0)

        assert hp.get_width() == 164
        assert hp.get_depth() == 10

    def test_with_dimensions(self):
        hp = LightHonestPeer.with_dimensions(200, 4)

        assert (hp.get_width(), hp.get_depth()) == (200, 4)

    def test_default_template(self):
        hp = LightHonestPeer()

        assert (hp.get_width(), hp.get_depth()) == (3000, 10)

    def test_new_instance_is_empty(self, light_peer):
        assert light_peer.local_raw_len() == 0
        assert light_peer.global_raw_len() == 0
        assert light_peer.local_normalized_len() == 0
        assert light_peer.global_normalized_len() == 0

    def test_template_is_not_shared(self):
        template = CountMinSketch(100, 4)
        template.increment("node_1", 9.0)

        hp = LightHonestPeer(template)
        hp.update_local("node_1", 1.0)

        assert hp.get_raw_local("node_1") == 1.0
        assert template.estimate("node_1") == 9.0

    def test_memory_is_fixed(self, light_peer, peer_ids):
        before = light_peer.memory_bytes()

        for peer in peer_ids * 50:
            light_peer.update_local(peer, 1.0)

        assert light_peer.memory_bytes() == before == 4 * 816 * 10 * 8


@pytest.mark.unit
class TestLocalTrust:
    """Local estimates and normalization."""

    def test_increment(self):
        hp = LightHonestPeer.from_bounds(50.0, 0.0001, 3000.0)
        hp.update_local("node_1", 50.0, Update.INCREMENT)

        estimate = hp.get_raw_local("node_1")
        assert 50.0 <= estimate <= 100.0

    def test_increment_then_decrement(self):
        hp = LightHonestPeer.from_bounds(50.0, 0.0001, 3000.0)
        hp.update_local("node_1", 50.0, Update.INCREMENT)
        hp.update_local("node_1", 25.0, Update.DECREMENT)

        assert hp.get_raw_local("node_1") == 25.0

    def test_decrement_floors_at_zero(self, light_peer):
        light_peer.update_local("node_1", 5.0)
        light_peer.update_local("node_1", 50.0, Update.DECREMENT)

        assert light_peer.get_raw_local("node_1") == 0.0
        assert light_peer.local_trust.matrix.min() >= 0.0

    def test_init_adds_to_existing_estimate(self, light_peer):
        light_peer.init_local("node_1", 3.0)
        light_peer.init_local("node_1", 4.0)

        assert light_peer.get_raw_local("node_1") == 7.0

    def test_normalized_local(self, light_peer):
        light_peer.init_local("node_1", 5.0)
        light_peer.init_local("node_2", 5.0)
        light_peer.update_local("node_1", 10.0)

        assert light_peer.get_normalized_local("node_1") == pytest.approx(0.75)

    def test_normalized_local_after_decrement(self, light_peer):
        light_peer.init_local("node_1", 5.0)
        light_peer.init_local("node_2", 5.0)
        light_peer.update_local("node_1", 2.5, Update.DECREMENT)

        assert light_peer.get_normalized_local("node_1") == pytest.approx(2.5 / 7.5)

    def test_normalized_rows_sum_to_one(self, light_peer, peer_ids):
        for i, peer in enumerate(peer_ids):
            light_peer.update_local(peer, float(i + 1))

        row_sums = light_peer.normalized_local_trust.matrix.sum(axis=1)
        assert np.allclose(row_sums, 1.0)

    def test_unknown_peer_estimates_zero(self, light_peer):
        light_peer.update_local("node_1", 5.0)

        assert light_peer.get_raw_local("ghost") == 0.0
        assert light_peer.get_normalized_local("ghost") == 0.0
        assert light_peer.get_raw_global("ghost") == 0.0

    def test_invalid_delta_rejected(self, light_peer):
        with pytest.raises(NumericBoundError):
            light_peer.update_local("node_1", -5.0)

        with pytest.raises(NumericBoundError):
            light_peer.update_global("node_1", "node_2", float("nan"))

    def test_normalization_is_idempotent(self, light_peer):
        light_peer.init_local("node_1", 3.0)
        light_peer.init_local("node_2", 7.0)

        light_peer.normalize_local()
        first = light_peer.get_normalized_local_map().matrix.copy()
        light_peer.normalize_local()

        assert np.array_equal(light_peer.get_normalized_local_map().matrix, first)
        assert light_peer.get_normalized_local("node_2") == pytest.approx(0.7)

    def test_unknown_direction_leaves_state_untouched(self, light_peer):
        light_peer.update_local("node_1", 5.0)

        with pytest.raises(NumericBoundError):
            light_peer.update_local("node_1", 5.0, "up")
        with pytest.raises(NumericBoundError):
            light_peer.update_global("node_1", "node_2", 5.0, "up")

        assert light_peer.get_raw_local("node_1") == 5.0
        assert light_peer.get_normalized_local("node_1") == pytest.approx(1.0)
        assert light_peer.get_raw_global("node_2") == 0.0
        assert light_peer.stats["local_updates"] == 1

    def test_direction_value_accepted(self, light_peer):
        light_peer.update_local("node_1", 5.0)
        light_peer.update_local("node_1", 2.0, "decrement")

        assert light_peer.get_raw_local("node_1") == 3.0

    def test_no_underestimate_at_capacity(self):
        """3000 peers, each raised twice by 50: no estimate below the truth."""
        hp = LightHonestPeer.from_bounds(ERROR_BOUND, PROBABILITY, MAX_ENTRIES)
        keys = [f"peer_{i}" for i in range(3000)]

        for _ in range(2):
            for key in keys:
                hp.local_trust.increment(key, 50.0)
        hp.normalize_local()

        assert all(hp.get_raw_local(key) >= 100.0 for key in keys)


@pytest.mark.unit
class TestGlobalTrust:
    """Sender-weighted global estimates."""

    def test_weighted_increment(self, light_peer):
        light_peer.init_local("node_1", 5.0)
        light_peer.init_local("node_2", 5.0)

        light_peer.update_global("node_1", "node_2", 10.0, Update.INCREMENT)

        assert light_peer.get_raw_global("node_2") == pytest.approx(5.0)

    def test_weighted_decrement(self, light_peer):
        light_peer.init_local("node_1", 5.0)
        light_peer.init_local("node_2", 5.0)
        light_peer.update_global("node_1", "node_2", 10.0, Update.INCREMENT)

        light_peer.update_global("node_1", "node_2", 5.0, Update.DECREMENT)

        assert light_peer.get_raw_global("node_2") == pytest.approx(2.5)

    def test_normalized_global(self, light_peer):
        light_peer.init_local("node_1", 5.0)
        light_peer.init_local("node_2", 5.0)
        light_peer.init_global("node_1", "node_2", 5.0)
        light_peer.update_global("node_2", "node_1", 10.0, Update.INCREMENT)

        assert light_peer.get_normalized_global("node_1") == pytest.approx(5.0 / 7.5)
        assert light_peer.get_normalized_global("node_2") == pytest.approx(2.5 / 7.5)

    def test_integer_counters_keep_fractional_vouches(self):
        hp = LightHonestPeer.with_dimensions(1000, 5, dtype=np.int64)
        hp.init_local("node_1", 1)
        hp.init_local("node_2", 1)

        hp.update_global("node_1", "node_2", 1)

        assert hp.get_raw_global("node_2") >= 0.5
        assert hp.get_raw_global("node_2") == 1
        assert hp.get_normalized_global("node_2") == pytest.approx(1.0)

    def test_unknown_sender_carries_no_weight(self, light_peer):
        light_peer.init_local("node_1", 5.0)

        light_peer.update_global("stranger", "node_2", 100.0)

        assert light_peer.get_raw_global("node_2") == 0.0
        assert light_peer.get_stats()["unweighted_vouches"] == 1


@pytest.mark.unit
class TestSnapshotsAndLengths:
    """Copies, cardinality and bucketization."""

    def test_maps_are_copies(self, light_peer):
        light_peer.update_local("node_1", 5.0)

        snapshot = light_peer.get_raw_local_map()
        snapshot.increment("node_1", 100.0)
        normalized = light_peer.get_normalized_local_map()
        normalized.matrix = np.zeros_like(normalized.matrix)

        assert light_peer.get_raw_local("node_1") == 5.0
        assert light_peer.get_normalized_local("node_1") == pytest.approx(1.0)
        assert isinstance(light_peer.get_raw_global_map(), CountMinSketch)
        assert isinstance(light_peer.get_normalized_global_map(), CountMinSketch)

    def test_lengths_are_rough_cardinality(self, light_peer):
        light_peer.update_local("node_1", 5.0)
        light_peer.update_local("node_2", 5.0)

        assert 1 <= light_peer.local_raw_len() <= 2
        assert 1 <= light_peer.local_normalized_len() <= 2

    def test_bucketize_requires_keys(self, light_peer):
        bucketizer = FixedWidthBucketizer(1.0)

        with pytest.raises(UnsupportedOperationError):
            list(light_peer.bucketize_local(bucketizer))
        with pytest.raises(UnsupportedOperationError):
            list(light_peer.bucketize_normalized_global(bucketizer))

    def test_bucketize_with_keys(self, light_peer):
        bucketizer = RangeBucketizer([(0.0, 5.0), (5.0, 15.0), (15.0, 30.0)])
        light_peer.update_local("node_1", 7.0)
        light_peer.update_local("node_2", 20.0)

        buckets = list(light_peer.bucketize_local(bucketizer, ["node_1", "node_2", "ghost"]))

        assert buckets == [("node_1", 1), ("node_2", 2), ("ghost", 0)]

    def test_bucketize_normalized(self, light_peer):
        light_peer.init_local("node_1", 5.0)
        light_peer.init_local("node_2", 15.0)
        light_peer.update_global("node_2", "node_3", 4.0)

        local = dict(light_peer.bucketize_normalized_local(FixedWidthBucketizer(0.1), ["node_1", "node_2"]))
        global_ = dict(light_peer.bucketize_global(FixedWidthBucketizer(1.0), ["node_3"]))
        normalized_global = dict(light_peer.bucketize_normalized_global(FixedWidthBucketizer(0.5), ["node_3"]))

        assert local == {"node_1": 2, "node_2": 7}
        assert global_ == {"node_3": 3}
        assert normalized_global == {"node_3": 2}


@pytest.mark.integration
class TestBackendAgreement:
    """Both backends answer the same workload alike."""

    def test_shared_contract(self, honest_peer, peer_ids):
        for i, peer in enumerate(peer_ids):
            honest_peer.init_local(peer, float(i + 1))
        honest_peer.update_global(peer_ids[9], peer_ids[0], 11.0)
        honest_peer.update_local(peer_ids[0], 1.0, Update.DECREMENT)

        total_local = sum(range(1, 11)) - 1
        assert honest_peer.get_raw_local(peer_ids[0]) == pytest.approx(0.0)
        assert honest_peer.get_normalized_local(peer_ids[4]) == pytest.approx(5.0 / total_local)
        assert honest_peer.get_raw_global(peer_ids[0]) == pytest.approx(10.0 / 55.0 * 11.0)
        assert honest_peer.get_normalized_global(peer_ids[0]) == pytest.approx(1.0)

    def test_cross_backend_estimates(self, precise_peer, light_peer, peer_ids):
        for i, peer in enumerate(peer_ids):
            precise_peer.update_local(peer, float(i) * 3.0)
            light_peer.update_local(peer, float(i) * 3.0)

        for peer in peer_ids:
            exact = precise_peer.get_raw_local(peer)
            estimate = light_peer.get_raw_local(peer)
            assert exact <= estimate <= exact + ERROR_BOUND

    def test_stats_report_fidelity(self, honest_peer):
        honest_peer.update_local("node_1", 1.0)

        stats = honest_peer.get_stats()

        assert stats["fidelity"] in ("exact", "sketch")
        assert stats["local_updates"] == 1
        assert honest_peer.get_peer_summary("node_1")["raw_local"] == pytest.approx(1.0)
