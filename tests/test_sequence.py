import numpy as np
import pytest

from censuscartogram.errors import FrameNotFoundError
from censuscartogram.geopandas_cartogram import GeoDataFrameContinuousCartogram
from censuscartogram.sequence import CartogramSequence

from conftest import POPULATION


@pytest.fixture
def sequence(joined):
    seq = CartogramSequence(joined)
    seq.compute()
    return seq


class TestCompute:

    def test_one_frame_per_year_in_order(self, sequence, joined):
        frames = sequence.frames
        assert sequence.years == [1841, 1851, 1861]
        assert frames["year"].tolist() == sorted(frames["year"].tolist())
        assert (frames.groupby("year").size() == joined["county"].nunique()).all()
        assert len(frames) == len(joined)

    def test_frames_keep_labels_and_crs(self, sequence, joined):
        frames = sequence.frames
        assert set(frames["year_label"]) == set(POPULATION)
        assert frames.crs == joined.crs
        assert "mean_size_error" in frames.columns

    def test_convergence_per_year(self, sequence):
        assert sorted(sequence.convergence) == [1841, 1851, 1861]
        for year, error in sequence.convergence.items():
            assert error >= 1.
            assert sequence.frame(year)["mean_size_error"].iloc[0] == error

    def test_converges_to_tolerance(self, joined):
        seq = CartogramSequence(joined, iterations=300, max_size_error=1.005)
        seq.compute()
        for year in seq.years:
            assert seq.convergence[year] <= 1.005
            frame = seq.frame(year)
            area_share = frame.geometry.area / frame.geometry.area.sum()
            value_share = frame["population"] / frame["population"].sum()
            # mean size error 1.005 over four counties bounds each ratio by 2%
            np.testing.assert_allclose((area_share / value_share).to_numpy(), 1., atol=0.02)

    def test_stops_early_once_converged(self, joined):
        year_df = joined[joined["year"] == 1861].reset_index(drop=True)
        carto = GeoDataFrameContinuousCartogram(year_df, "population")
        carto.compute(iterations=300, max_size_error=1.005)
        assert carto.mean_size_error <= 1.005
        assert len(carto._passes) < 300
        assert len(carto.mean_size_errors) == len(carto._passes) + 1

    def test_area_follows_population(self, sequence):
        for year in sequence.years:
            frame = sequence.frame(year)
            largest = frame.loc[frame["population"].idxmax(), "county"]
            areas = frame.geometry.area
            assert frame.loc[areas.idxmax(), "county"] == largest

    def test_area_shares_track_population_shares(self, sequence):
        frame = sequence.frame(1861)
        area_share = frame.geometry.area / frame.geometry.area.sum()
        value_share = frame["population"] / frame["population"].sum()
        ratios = (area_share / value_share).to_numpy()
        # equal areas start far from proportional; the cartogram gets closer
        assert np.abs(np.log(ratios)).mean() < np.abs(np.log(0.25 / value_share)).mean()

    def test_years_are_independent(self, joined, sequence):
        single = CartogramSequence(joined[joined["year"] == 1851])
        single.compute()
        np.testing.assert_allclose(
            single.frame(1851).geometry.area.to_numpy(),
            sequence.frame(1851).geometry.area.to_numpy(),
        )

    def test_missing_column(self, joined):
        with pytest.raises(ValueError):
            CartogramSequence(joined.drop(columns=["population"]))

    def test_frame_before_compute(self, joined):
        with pytest.raises(RuntimeError):
            CartogramSequence(joined).frame(1841)

    def test_unknown_year(self, sequence):
        with pytest.raises(FrameNotFoundError):
            sequence.frame(1999)
        with pytest.raises(KeyError):
            sequence.frame(1999)


class TestInterpolate:

    def test_ends(self, sequence):
        start = sequence.interpolate(1841, 1851, 0)
        end = sequence.interpolate(1841, 1851, 1)
        assert start.geometry.geom_equals(sequence.frame(1841).geometry).all()
        assert end.geometry.geom_equals(sequence.frame(1851).geometry).all()

    def test_values_blend(self, sequence):
        mid = sequence.interpolate(1841, 1851, 0.5, ease_name='linear')
        a = sequence.frame(1841)["population"].to_numpy()
        b = sequence.frame(1851)["population"].to_numpy()
        np.testing.assert_allclose(mid["population"].to_numpy(), (a + b) / 2)
        assert mid.geometry.is_valid.all()


class TestTimeline:

    def test_frame_count(self, sequence):
        timeline = sequence.timeline(tween_frames=3, hold_frames=2)
        assert len(timeline) == 3 * 2 + 2 * 3

    def test_with_geography(self, sequence):
        timeline = sequence.timeline(tween_frames=3, hold_frames=2, include_geography=True)
        assert len(timeline) == (2 + 3) + 3 * 2 + 2 * 3
        assert timeline[0].kind == 'geography'
        assert timeline[0].year == 1841

    def test_hold_at_least_one(self, sequence):
        timeline = sequence.timeline(tween_frames=0, hold_frames=0)
        assert [f.year for f in timeline] == [1841, 1851, 1861]
        assert all(f.kind == 'hold' for f in timeline)

    def test_labels_follow_nearest_year(self, sequence):
        timeline = sequence.timeline(tween_frames=4, hold_frames=1)
        years = [f.year for f in timeline]
        assert years == sorted(years)
        tweens = [f for f in timeline[:6] if f.kind == 'tween']
        assert [f.year for f in tweens] == [1841, 1841, 1851, 1851]
        assert all(f.year_label == str(f.year) for f in timeline)
