"""Unit tests for core/formatter.py -- batch wire shape and terminal summary."""

import json

from core import formatter
from core.models import (
    AffectedFeature,
    FeatureType,
    Namespace,
    Severity,
    UpdateResponse,
    Vulnerability,
    VulnerabilityWithAffected,
)

_RESPONSE = UpdateResponse(
    vulnerabilities=[
        VulnerabilityWithAffected(
            vulnerability=Vulnerability(
                name="ALAS-2020-1",
                link="https://alas.aws.amazon.com/ALAS-2020-1.html",
                severity=Severity.HIGH,
                description="desc",
            ),
            affected=[
                AffectedFeature(
                    namespace=Namespace("amzn:2018.03", "rpm"),
                    feature_name="foo",
                    feature_type=FeatureType.BINARY,
                    affected_version="1.0-1",
                    fixed_in_version="1.0-1",
                )
            ],
        )
    ],
    flag_name="amazonLinux1Updater",
    flag_value="2020-01-01 00:00",
)


class TestToDict:
    def test_wire_shape(self):
        assert formatter.to_dict(_RESPONSE) == {
            "Vulnerabilities": [
                {
                    "Name": "ALAS-2020-1",
                    "Link": "https://alas.aws.amazon.com/ALAS-2020-1.html",
                    "Severity": "High",
                    "Description": "desc",
                    "Affected": [
                        {
                            "Namespace": {"Name": "amzn:2018.03", "VersionFormat": "rpm"},
                            "FeatureName": "foo",
                            "FeatureType": "Binary",
                            "AffectedVersion": "1.0-1",
                            "FixedInVersion": "1.0-1",
                        }
                    ],
                }
            ],
            "FlagName": "amazonLinux1Updater",
            "FlagValue": "2020-01-01 00:00",
            "Notes": [],
        }

    def test_no_progress_has_empty_flag_fields(self):
        wire = formatter.to_dict(UpdateResponse())
        assert wire["FlagName"] == ""
        assert wire["FlagValue"] == ""
        assert wire["Vulnerabilities"] == []

    def test_to_json_round_trips(self):
        assert json.loads(formatter.to_json(_RESPONSE)) == formatter.to_dict(_RESPONSE)


class TestPrintSummary:
    def test_counts_and_watermark(self, capsys, monkeypatch):
        monkeypatch.setattr(formatter, "_color_enabled", False)
        formatter.print_summary("amzn1", _RESPONSE)
        out = capsys.readouterr().out
        assert "1 vulnerabilities, 1 affected features" in out
        assert "High" in out
        assert "Watermark: 2020-01-01 00:00" in out

    def test_unchanged_watermark_and_notes(self, capsys, monkeypatch):
        monkeypatch.setattr(formatter, "_color_enabled", False)
        formatter.print_summary("debian", UpdateResponse(notes=["Debian potato is not mapped"]))
        out = capsys.readouterr().out
        assert "Watermark: unchanged" in out
        assert "[!] Debian potato is not mapped" in out
