"""Tests for the CSV dataset loader."""

import pandas as pd
import pytest

from sensorguard.exceptions import DatasetLoadError
from sensorguard.stream.loader import load_dataset, readings_from_frame
from sensorguard.stream.reading import FEATURE_NAMES, Reading

HEADER = "SensorID,Packet_Rate,SNR,Battery_Level,Is_Malicious"


def write_csv(tmp_path, *lines: str):
    path = tmp_path / "dataset.csv"
    path.write_text("\n".join(lines) + "\n")
    return path


class TestLoadDataset:
    """Test parsing rules."""

    def test_basic_rows(self, tmp_path):
        """Rows become Readings in file order."""
        path = write_csv(tmp_path, HEADER, "n1,10.5,20,80,0", "n2,3,4.5,50,1")

        report = load_dataset(path)

        assert report.total_rows == 2
        assert report.malformed == 0
        first, second = report.readings
        assert first.sensor_id == "n1"
        assert first.packet_rate == 10.5
        assert first.snr == 20.0
        assert first.is_malicious == 0
        assert second.sensor_id == "n2"
        assert second.is_malicious == 1

    def test_header_trimmed_and_case_insensitive(self, tmp_path):
        """Column names match regardless of case and padding."""
        path = write_csv(tmp_path, " SENSORID , packet_rate ,snr", "n1,7,2")

        reading = load_dataset(path).readings[0]

        assert reading.sensor_id == "n1"
        assert reading.packet_rate == 7.0
        assert reading.snr == 2.0

    def test_malformed_rows_counted_and_skipped(self, tmp_path):
        """Column-count mismatches are skipped, not fatal."""
        path = write_csv(tmp_path, HEADER, "n1,1,2,3,0", "n2,1,2", "n3,1,2,3,0,extra", "n4,1,2,3,1")

        report = load_dataset(path)

        assert [r.sensor_id for r in report.readings] == ["n1", "n4"]
        assert report.malformed == 2

    def test_blank_and_garbage_numbers_are_zero(self, tmp_path):
        """Empty or unparseable numeric fields default to 0.0."""
        path = write_csv(tmp_path, HEADER, "n1,,abc,  ,")

        reading = load_dataset(path).readings[0]

        assert reading.packet_rate == 0.0
        assert reading.snr == 0.0
        assert reading.battery_level == 0.0
        assert reading.is_malicious is None

    def test_missing_columns_default_to_zero(self, tmp_path):
        """A dataset without Battery_Level yields battery_level 0.0."""
        path = write_csv(tmp_path, "node_id,Packet_Rate", "n1,5")

        reading = load_dataset(path).readings[0]

        assert reading.battery_level == 0.0
        assert set(reading.features()) == set(FEATURE_NAMES)

    def test_sensor_id_aliases(self, tmp_path):
        """First non-empty of sensorid, ip_address, node_id."""
        path = write_csv(
            tmp_path,
            "node_id,ip_address,SensorID,SNR",
            "node-a,10.0.0.1,s1,1",
            "node-b,10.0.0.2,,1",
            "node-c,,,1",
            ",,,1",
        )

        ids = [r.sensor_id for r in load_dataset(path).readings]

        assert ids == ["s1", "10.0.0.2", "node-c", "unknown"]

    def test_non_integer_label_is_none(self, tmp_path):
        """Only integral labels are kept."""
        path = write_csv(tmp_path, HEADER, "n1,1,1,1,0.5", "n2,1,1,1,yes")

        labels = [r.is_malicious for r in load_dataset(path).readings]

        assert labels == [None, None]

    def test_missing_file(self, tmp_path):
        """A missing file is a load failure."""
        with pytest.raises(DatasetLoadError, match="not found"):
            load_dataset(tmp_path / "missing.csv")

    @pytest.mark.parametrize("content", ["", "SensorID,SNR\n", "\n\n"])
    def test_no_data_rows(self, tmp_path, content):
        """Empty or header-only files are load failures."""
        path = tmp_path / "empty.csv"
        path.write_text(content)

        with pytest.raises(DatasetLoadError):
            load_dataset(path)


class TestReadingsFromFrame:
    """Test conversion of pre-built frames."""

    def test_comma_decimal_separator(self):
        """A comma decimal separator is accepted."""
        frame = pd.DataFrame({"SensorID": ["n1"], "SNR": ["4,5"]})

        reading = readings_from_frame(frame)[0]

        assert reading.snr == pytest.approx(4.5)

    def test_empty_frame(self):
        """No rows, no readings."""
        assert readings_from_frame(pd.DataFrame()) == []


class TestReading:
    """Test the reading model."""

    def test_value_lookup(self):
        """Canonical names resolve; unknown names return None."""
        reading = Reading(sensor_id="n1", snr=3.0)

        assert reading.value("SNR") == 3.0
        assert reading.value("Temperature") is None
