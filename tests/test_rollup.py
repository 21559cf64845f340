"""
Tests for MetricRollup

Tests cover:
- Daily rollup of a two-day hourly series (known averages)
- Time weighting, null handling, truncation of integer gauges
- Additive sums and latest date gauges
- Idempotent re-runs (upsert by window start)
- Empty windows
"""

import pytest
from datetime import datetime, timedelta

from app.models import VmdbMetric
from app.services.vmdb_metrics import (
    MetricRollup,
    MetricsRepository,
    UnknownIntervalError,
    aggregate_records,
    record_weights,
    weighted_average,
)

# (hours before TS, rows, wasted_bytes, percent_bloat); size is always rows * 10
HOURLY_SERIES = [
    (50, 0, 0, 0.0), (49, 10, 2, 0.2), (48, 10, 2, 0.2), (47, 20, 4, 0.4),
    (46, 20, 4, 0.4), (45, 20, 4, 0.4), (44, 30, 6, 0.5), (43, 40, 8, 0.6),
    (42, 50, 10, 0.7), (41, 60, 12, 0.8), (40, 60, 12, 0.8), (39, 70, 14, 1.0),
    (38, 80, 16, 1.0), (37, 90, 18, 4.0), (36, 100, 20, 5.0), (35, 110, 22, 6.0),
    # 2012-08-14 00:00:01 .. 23:00:01
    (34, 120, 24, 9.0), (33, 130, 26, 11.4), (32, 130, 26, 11.4), (31, 130, 26, 11.4),
    (30, 140, 28, 14.5), (29, 150, 30, 15.0), (28, 160, 32, 16.0), (27, 170, 34, 17.0),
    (26, 180, 36, 18.3), (25, 190, 38, 19.0), (24, 200, 40, 20.0), (23, 200, 40, 20.0),
    (22, 210, 42, 21.6), (21, 220, 44, 22.1), (20, 240, 26, 24.0), (19, 250, 28, 25.0),
    (18, 260, 30, 26.0), (17, 290, 32, 29.0), (16, 300, 34, 30.4), (15, 340, 36, 34.4),
    (14, 350, 38, 35.0), (13, 350, 40, 35.3), (12, 360, 40, 36.5), (11, 380, 42, 38.8),
    # 2012-08-14 .. 2012-08-15 boundary
    (10, 400, 44, 40.9), (9, 410, 60, 41.1), (8, 420, 62, 42.0), (7, 420, 64, 42.0),
    (6, 430, 70, 43.4), (5, 440, 72, 44.7), (4, 460, 74, 46.3), (3, 470, 76, 47.0),
    (2, 480, 80, 48.5), (1, 490, 84, 49.0), (0, 500, 90, 50.7),
]

TS = datetime(2012, 8, 15, 10, 0, 1)


@pytest.fixture
def hourly_series(db, evm_table):
    """The hourly series above, stored for the accounts table."""
    repo = MetricsRepository(db)
    for hours, rows, wasted, bloat in HOURLY_SERIES:
        repo.add_metric(evm_table, "hourly", TS - timedelta(hours=hours), {
            "rows": rows,
            "size": rows * 10,
            "wasted_bytes": wasted,
            "percent_bloat": bloat,
        })
    db.commit()
    return evm_table


def add_hourly(db, resource, timestamp, **values):
    metric = MetricsRepository(db).add_metric(resource, "hourly", timestamp, values)
    db.commit()
    return metric


def daily_records(db, resource):
    return db.query(VmdbMetric).filter(
        VmdbMetric.resource_id == resource.id,
        VmdbMetric.capture_interval_name == "daily",
    ).all()


class TestDailyRollup:
    """Daily rollups over the stored hourly series."""

    def test_returns_one_row_with_average_daily_rollups(self, db, hourly_series):
        MetricRollup(db).rollup(hourly_series, "daily", datetime(2012, 8, 14, 0, 0, 1))

        records = daily_records(db, hourly_series)
        assert len(records) == 1
        record = records[0]
        assert record.timestamp == datetime(2012, 8, 14)
        assert record.rows == 227
        assert record.size == 2270
        assert record.wasted_bytes == pytest.approx(33.83, abs=0.01)
        assert record.percent_bloat == pytest.approx(22.54, abs=0.01)

    def test_rerun_overwrites_instead_of_duplicating(self, db, hourly_series):
        rollup = MetricRollup(db)
        first = rollup.rollup(hourly_series, "daily", datetime(2012, 8, 14))
        first_id = first.id

        rollup.rollup(hourly_series, "daily", datetime(2012, 8, 14, 17, 30))

        records = daily_records(db, hourly_series)
        assert len(records) == 1
        assert records[0].id == first_id
        assert records[0].rows == 227

    def test_rerun_picks_up_changed_source_records(self, db, evm_table):
        rollup = MetricRollup(db)
        add_hourly(db, evm_table, datetime(2012, 8, 14, 1), rows=100)
        rollup.rollup(evm_table, "daily", datetime(2012, 8, 14))

        add_hourly(db, evm_table, datetime(2012, 8, 14, 2), rows=300)
        rollup.rollup(evm_table, "daily", datetime(2012, 8, 14))

        records = daily_records(db, evm_table)
        assert len(records) == 1
        assert records[0].rows == 200

    def test_empty_window_writes_nothing(self, db, hourly_series):
        result = MetricRollup(db).rollup(hourly_series, "daily", datetime(2012, 8, 20))

        assert result is None
        assert daily_records(db, hourly_series) == []

    def test_uneven_gaps_are_time_weighted(self, db, evm_table):
        """A record after a three hour gap counts three times as much."""
        add_hourly(db, evm_table, datetime(2012, 8, 14, 0), rows=10)
        add_hourly(db, evm_table, datetime(2012, 8, 14, 1), rows=10)
        add_hourly(db, evm_table, datetime(2012, 8, 14, 4), rows=50)

        metric = MetricRollup(db).rollup(evm_table, "daily", datetime(2012, 8, 14))

        # (10*1h + 10*1h + 50*3h) / 5h
        assert metric.rows == 34

    def test_record_after_capture_outage_gets_nominal_weight(self, db, evm_table):
        """A predecessor days before the window does not inflate the first record's weight."""
        add_hourly(db, evm_table, datetime(2012, 8, 10, 12), rows=10)
        add_hourly(db, evm_table, datetime(2012, 8, 14, 12), rows=500)
        for hour in range(13, 24):
            add_hourly(db, evm_table, datetime(2012, 8, 14, hour), rows=10)

        metric = MetricRollup(db).rollup(evm_table, "daily", datetime(2012, 8, 14))

        # (500*1h + 10*11h) / 12h
        assert metric.rows == 50

    def test_predecessor_within_one_interval_is_used(self, db, evm_table):
        add_hourly(db, evm_table, datetime(2012, 8, 13, 23, 30), rows=0)
        add_hourly(db, evm_table, datetime(2012, 8, 14, 0, 0), rows=100)
        add_hourly(db, evm_table, datetime(2012, 8, 14, 1, 0), rows=40)

        metric = MetricRollup(db).rollup(evm_table, "daily", datetime(2012, 8, 14))

        # (100*0.5h + 40*1h) / 1.5h
        assert metric.rows == 60

    def test_additive_sum_and_latest_dates(self, db, evm_table):
        add_hourly(db, evm_table, datetime(2012, 8, 14, 1), table_scans=3, rows_inserted=None,
                   last_vacuum_date=datetime(2012, 8, 13, 22))
        add_hourly(db, evm_table, datetime(2012, 8, 14, 2), table_scans=4, rows_inserted=7,
                   last_vacuum_date=datetime(2012, 8, 14, 1, 30))
        add_hourly(db, evm_table, datetime(2012, 8, 14, 3), table_scans=0, rows_inserted=None,
                   last_vacuum_date=None)

        metric = MetricRollup(db).rollup(evm_table, "daily", datetime(2012, 8, 14))

        assert metric.table_scans == 7
        assert metric.rows_inserted == 7
        assert metric.rows_deleted is None
        assert metric.last_vacuum_date == datetime(2012, 8, 14, 1, 30)

    def test_only_source_interval_is_aggregated(self, db, evm_table):
        add_hourly(db, evm_table, datetime(2012, 8, 14, 5), rows=10)
        MetricsRepository(db).add_metric(evm_table, "daily", datetime(2012, 8, 14, 6), {"rows": 9999})
        db.commit()

        metric = MetricRollup(db).rollup(evm_table, "daily", datetime(2012, 8, 14))

        assert metric.rows == 10

    def test_resources_are_kept_apart(self, db, evm_table, vmdb_index):
        add_hourly(db, evm_table, datetime(2012, 8, 14, 5), rows=10)
        add_hourly(db, vmdb_index, datetime(2012, 8, 14, 5), rows=99)

        metric = MetricRollup(db).rollup(vmdb_index, "daily", datetime(2012, 8, 14))

        assert metric.resource_type == "VmdbIndex"
        assert metric.rows == 99


class TestWeeklyRollup:
    """Weekly rollups are built from daily records."""

    def test_weekly_window_starts_on_monday(self, db, evm_table):
        repo = MetricsRepository(db)
        # Monday 2012-08-13 .. Sunday 2012-08-19
        for day, size in [(13, 100), (14, 200), (15, 300)]:
            repo.add_metric(evm_table, "daily", datetime(2012, 8, day), {"size": size, "table_scans": 5})
        repo.add_metric(evm_table, "daily", datetime(2012, 8, 20), {"size": 9999, "table_scans": 5})
        db.commit()

        metric = MetricRollup(db).rollup(evm_table, "weekly", datetime(2012, 8, 16, 12))

        assert metric.timestamp == datetime(2012, 8, 13)
        assert metric.capture_interval_name == "weekly"
        assert metric.size == 200
        assert metric.table_scans == 15

    def test_hourly_is_not_a_rollup_interval(self, db, evm_table):
        with pytest.raises(UnknownIntervalError):
            MetricRollup(db).rollup(evm_table, "hourly", datetime(2012, 8, 14))


class TestWeighting:
    """Tests for the pure weighting helpers."""

    def test_first_record_without_predecessor_gets_nominal_weight(self):
        weights = record_weights(
            [datetime(2012, 8, 14, 0), datetime(2012, 8, 14, 2)],
            None,
            timedelta(hours=1),
        )
        assert weights == [3600.0, 7200.0]

    def test_predecessor_before_window_sets_first_weight(self):
        weights = record_weights(
            [datetime(2012, 8, 14, 0, 0, 1)],
            datetime(2012, 8, 13, 23, 0, 1),
            timedelta(hours=1),
        )
        assert weights == [3600.0]

    def test_weighted_average(self):
        assert weighted_average([10, 40], [3600, 7200]) == pytest.approx(30.0)

    def test_none_values_are_ignored(self):
        assert weighted_average([None, 40, None], [3600, 3600, 3600]) == 40

    def test_all_none_gives_none(self):
        assert weighted_average([None, None], [3600, 3600]) is None

    def test_zero_weights_fall_back_to_mean(self):
        assert weighted_average([10, 20], [0.0, 0.0]) == 15

    def test_integer_gauges_truncate(self):
        records = [VmdbMetric(rows=1, size=10, percent_bloat=0.5), VmdbMetric(rows=2, size=19, percent_bloat=0.6)]

        values = aggregate_records(records, [1.0, 1.0])

        assert values["rows"] == 1
        assert values["size"] == 14
        assert values["percent_bloat"] == pytest.approx(0.55)
