"""
Tests for the cloudbpa command line interface.
"""

import json

import pytest
import yaml

from cloudbpa.cli.main import build_parser, load_resources, main

RESOURCES = [
    {
        "resourceId": "bucket-good",
        "resourceType": "AWS::S3::Bucket",
        "accountId": "111111111111",
        "region": "us-east-1",
        "configuration": {"versioning": {"status": "Enabled"}, "encryption": {"algorithm": "AES256"}},
    },
    {
        "resourceId": "bucket-bad",
        "resourceType": "AWS::S3::Bucket",
        "accountId": "111111111111",
        "region": "us-east-1",
        "configuration": {"versioning": {"status": "Suspended"}},
    },
    {
        "resourceId": "i-0abc",
        "resourceType": "AWS::EC2::Instance",
        "accountId": "111111111111",
        "region": "eu-west-1",
        "configuration": {"monitoring": {"state": "enabled"}, "publicIp": "203.0.113.10"},
    },
]


@pytest.fixture
def catalog_file(tmp_path, catalog):
    path = tmp_path / "catalog.yaml"
    path.write_text(yaml.safe_dump(catalog), encoding="utf-8")
    return str(path)


@pytest.fixture
def resources_file(tmp_path):
    path = tmp_path / "resources.json"
    path.write_text(json.dumps(RESOURCES), encoding="utf-8")
    return str(path)


def analyze_args(catalog_file, resources_file, output, *extra):
    return [
        "analyze",
        "--catalog",
        catalog_file,
        "--resources",
        resources_file,
        "--output",
        output,
        *extra,
    ]


@pytest.mark.unit
class TestAnalyzeCommand:
    """Test the analyze subcommand"""

    def test_completed_analysis_exits_zero(self, catalog_file, resources_file, tmp_path, capsys):
        output = str(tmp_path / "run.json")

        exit_code = main(analyze_args(catalog_file, resources_file, output, "--tenant", "acme"))

        assert exit_code == 0
        snapshot = json.loads((tmp_path / "run.json").read_text(encoding="utf-8"))
        assert snapshot["result"]["status"] == "COMPLETED"
        assert snapshot["result"]["overallScore"] == pytest.approx(51.11)
        assert len(snapshot["findings"]) == 4
        assert len(snapshot["resources"]) == 3
        assert f"Results exported to {output}" in capsys.readouterr().out

    def test_partial_analysis_exits_two(self, catalog_file, resources_file, tmp_path):
        output = str(tmp_path / "run.json")
        args = analyze_args(
            catalog_file, resources_file, output, "--tenant", "acme", "--framework", "aws-wa", "--framework", "nist"
        )

        assert main(args) == 2

    def test_failed_analysis_exits_one(self, catalog_file, resources_file, tmp_path):
        output = str(tmp_path / "run.json")
        args = analyze_args(catalog_file, resources_file, output, "--tenant", "initech", "--framework", "aws-wa")

        assert main(args) == 1
        assert json.loads((tmp_path / "run.json").read_text(encoding="utf-8"))["result"]["status"] == "FAILED"

    def test_tenant_without_selections(self, catalog_file, resources_file, tmp_path, capsys):
        args = analyze_args(catalog_file, resources_file, str(tmp_path / "run.json"), "--tenant", "initech")

        assert main(args) == 1
        assert "No frameworks selected for tenant initech" in capsys.readouterr().out

    def test_sequential_flag(self, catalog_file, resources_file, tmp_path):
        output = str(tmp_path / "run.json")
        assert main(analyze_args(catalog_file, resources_file, output, "--tenant", "acme", "--sequential")) == 0

    def test_missing_catalog_reports_error(self, resources_file, tmp_path, capsys):
        args = analyze_args(str(tmp_path / "nope.yaml"), resources_file, str(tmp_path / "run.json"), "--tenant", "acme")

        assert main(args) == 1
        assert "Error: Cannot read catalog" in capsys.readouterr().out

    def test_invalid_resources_report_error(self, catalog_file, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps([{"resourceType": "AWS::S3::Bucket"}]), encoding="utf-8")

        args = analyze_args(catalog_file, str(bad), str(tmp_path / "run.json"), "--tenant", "acme")

        assert main(args) == 1
        assert capsys.readouterr().out.startswith("Error:")


@pytest.mark.unit
class TestDiffCommand:
    """Test the diff subcommand"""

    def test_diff_two_runs(self, catalog_file, resources_file, tmp_path):
        baseline = str(tmp_path / "run-1.json")
        comparison = str(tmp_path / "run-2.json")
        assert main(analyze_args(catalog_file, resources_file, baseline, "--tenant", "acme")) == 0

        changed = [dict(r) for r in RESOURCES]
        changed[1] = dict(changed[1], configuration={"versioning": {"status": "Enabled"}, "encryption": {}})
        changed_file = tmp_path / "resources-2.json"
        changed_file.write_text(json.dumps(changed), encoding="utf-8")
        assert main(analyze_args(catalog_file, str(changed_file), comparison, "--tenant", "acme")) == 0

        diff_output = tmp_path / "diff.json"
        exit_code = main(
            ["diff", "--baseline", baseline, "--comparison", comparison, "--output", str(diff_output)]
        )

        assert exit_code == 0
        diff = json.loads(diff_output.read_text(encoding="utf-8"))
        assert [c["resourceId"] for c in diff["resourcesModified"]] == ["bucket-bad"]
        resolved = {c["ruleId"] for c in diff["complianceResolvedViolations"]}
        assert resolved == {"S3-001", "S3-002"}
        assert diff["securityRiskLevel"] == "DECREASED"

    def test_diff_threshold(self, catalog_file, resources_file, tmp_path, capsys):
        run = str(tmp_path / "run.json")
        assert main(analyze_args(catalog_file, resources_file, run, "--tenant", "acme")) == 0
        capsys.readouterr()

        assert main(["diff", "--baseline", run, "--comparison", run, "--threshold", "high"]) == 0

        diff = json.loads(capsys.readouterr().out)
        assert diff["totalChanges"] == 0
        assert diff["securityRiskLevel"] == "UNCHANGED"


@pytest.mark.unit
class TestParser:
    """Test argument parsing and helpers"""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out

    def test_invalid_threshold_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["diff", "--baseline", "a", "--comparison", "b", "--threshold", "low"])

    def test_invalid_log_level_rejected(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "chatty", "diff", "--baseline", "a", "--comparison", "b"])

        assert exc_info.value.code == 2
        assert "invalid choice" in capsys.readouterr().err

    def test_log_level_is_case_insensitive(self):
        args = build_parser().parse_args(["--log-level", "debug", "diff", "--baseline", "a", "--comparison", "b"])
        assert args.log_level == "DEBUG"

    def test_framework_flag_repeatable(self):
        args = build_parser().parse_args(
            ["analyze", "--catalog", "c", "--resources", "r", "--tenant", "t", "--framework", "a", "--framework", "b"]
        )
        assert args.framework == ["a", "b"]

    def test_load_resources_accepts_mapping(self, tmp_path):
        path = tmp_path / "resources.yaml"
        path.write_text(yaml.safe_dump({"resources": RESOURCES}), encoding="utf-8")

        resources = load_resources(str(path))

        assert [r.resource_id for r in resources] == ["bucket-good", "bucket-bad", "i-0abc"]
