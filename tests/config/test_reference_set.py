"""
Tests for YAML reference sets: loading, validation, the packaged default
set, and bridging into sources and the database.
"""

from pathlib import Path

import pytest
import yaml
from sqlalchemy import func, select

from doa_config import get_reference_set, load_reference_set, validate_reference_set
from doa_config.bridges import reference_source_from_set, seed_reference_set
from doa_config.validator import selectable_threshold_keys
from doa_kernel.domain.reference import COUNT_BARE_X_SETTING, RiskLevel, ThresholdKey
from doa_kernel.exceptions import InvalidReferenceDataError
from doa_kernel.models.reference import RoleModel, ThresholdApproverModel

# =============================================================================
# Helpers
# =============================================================================


def make_threshold_doc(key: str = "under-5m", **overrides) -> dict:
    doc = {
        "key": key,
        "type": "contract_value",
        "name": "<= SAR 5M",
        "code": "4.2.3.1.3",
        "max_value": 5000000,
        "approvers": [
            {"role": "CFO", "action": "X2"},
            {"role": "Marketing & Commercial", "action": "R1"},
        ],
    }
    doc.update(overrides)
    return doc


def write_set(
    root: Path,
    name: str = "custom",
    thresholds: list | None = None,
    countries: list | None = None,
    settings: dict | None = None,
) -> Path:
    set_dir = root / name
    set_dir.mkdir(parents=True)
    fragments = {
        "thresholds.yaml": {
            "thresholds": thresholds if thresholds is not None else [make_threshold_doc()],
        },
        "countries.yaml": {
            "countries": countries if countries is not None else [
                {"name": "Oman", "risk_level": "safe"},
                {"name": "Egypt", "risk_level": "special"},
            ],
        },
        "settings.yaml": {
            "settings": settings if settings is not None else {
                COUNT_BARE_X_SETTING: {"enabled": False},
            },
        },
    }
    for filename, doc in fragments.items():
        (set_dir / filename).write_text(yaml.safe_dump(doc, sort_keys=False))
    return set_dir


# =============================================================================
# Loading
# =============================================================================


class TestLoad:

    def test_parses_fragments(self, tmp_path):
        ref_set = load_reference_set(write_set(tmp_path))

        assert ref_set.name == "custom"
        assert [t.key for t in ref_set.thresholds] == ["under-5m"]
        threshold = ref_set.thresholds[0].to_threshold()
        assert [(a.role, a.action, a.label) for a in threshold.approvers] == [
            ("CFO", "X2", "Approve"),
            ("Marketing & Commercial", "R1", "Approve"),
        ]
        assert ref_set.setting(COUNT_BARE_X_SETTING) == {"enabled": False}

    def test_checksum_is_deterministic(self, tmp_path):
        first = load_reference_set(write_set(tmp_path, "a"))
        second = load_reference_set(write_set(tmp_path, "b"))

        assert first.checksum == second.checksum

    def test_checksum_tracks_content(self, tmp_path):
        first = load_reference_set(write_set(tmp_path, "a"))
        second = load_reference_set(
            write_set(tmp_path, "b", thresholds=[make_threshold_doc(name="edited")])
        )

        assert first.checksum != second.checksum

    def test_missing_setting_uses_default(self, tmp_path):
        ref_set = load_reference_set(write_set(tmp_path, settings={}))

        assert ref_set.setting(COUNT_BARE_X_SETTING, "fallback") == "fallback"

    def test_missing_required_field(self, tmp_path):
        doc = make_threshold_doc()
        del doc["code"]

        with pytest.raises(InvalidReferenceDataError) as exc_info:
            load_reference_set(write_set(tmp_path, thresholds=[doc]))

        assert "code" in exc_info.value.errors[0]

    def test_bad_amount(self, tmp_path):
        with pytest.raises(InvalidReferenceDataError):
            load_reference_set(
                write_set(tmp_path, thresholds=[make_threshold_doc(max_value="five million")])
            )

    def test_missing_fragment(self, tmp_path):
        set_dir = write_set(tmp_path)
        (set_dir / "countries.yaml").unlink()

        with pytest.raises(FileNotFoundError):
            load_reference_set(set_dir)


# =============================================================================
# Validation
# =============================================================================


class TestValidation:

    def test_minimal_set_is_valid_with_coverage_warnings(self, tmp_path):
        result = validate_reference_set(load_reference_set(write_set(tmp_path)))

        assert result.is_valid
        assert "Threshold key 'over-200m' is selectable but not defined" in result.warnings

    def test_duplicate_threshold_key(self, tmp_path):
        ref_set = load_reference_set(
            write_set(tmp_path, thresholds=[make_threshold_doc(), make_threshold_doc()])
        )

        result = validate_reference_set(ref_set)

        assert not result.is_valid
        assert "Duplicate threshold key 'under-5m' (2 definitions)" in result.errors

    def test_unknown_type(self, tmp_path):
        ref_set = load_reference_set(
            write_set(tmp_path, thresholds=[make_threshold_doc(type="barter")])
        )

        assert "Threshold 'under-5m' has unknown type 'barter'" in (
            validate_reference_set(ref_set).errors
        )

    def test_malformed_action(self, tmp_path):
        doc = make_threshold_doc(approvers=[{"role": "CFO", "action": "Approve"}])

        result = validate_reference_set(load_reference_set(write_set(tmp_path, thresholds=[doc])))

        assert result.errors == [
            "Threshold 'under-5m': role 'CFO' has malformed action 'Approve'"
        ]

    def test_starred_and_ex_actions_accepted(self, tmp_path):
        doc = make_threshold_doc(approvers=[
            {"role": "CEO", "action": "EX"},
            {"role": "COO", "action": "r2*"},
        ])

        result = validate_reference_set(load_reference_set(write_set(tmp_path, thresholds=[doc])))

        assert result.is_valid

    def test_blank_role(self, tmp_path):
        doc = make_threshold_doc(approvers=[{"role": " ", "action": "X"}])

        result = validate_reference_set(load_reference_set(write_set(tmp_path, thresholds=[doc])))

        assert "Threshold 'under-5m' has an approver without a role" in result.errors

    def test_empty_chain_warns(self, tmp_path):
        doc = make_threshold_doc(approvers=[])

        result = validate_reference_set(load_reference_set(write_set(tmp_path, thresholds=[doc])))

        assert result.is_valid
        assert "Threshold 'under-5m' has no approvers" in result.warnings

    def test_duplicate_pair_warns(self, tmp_path):
        doc = make_threshold_doc(approvers=[
            {"role": "CFO", "action": "X2"},
            {"role": "CFO", "action": "X2"},
        ])

        result = validate_reference_set(load_reference_set(write_set(tmp_path, thresholds=[doc])))

        assert result.is_valid
        assert any("CFO:X2" in w for w in result.warnings)

    def test_country_errors(self, tmp_path):
        ref_set = load_reference_set(write_set(tmp_path, countries=[
            {"name": "Oman", "risk_level": "safe"},
            {"name": "Oman", "risk_level": "special"},
            {"name": "Atlantis", "risk_level": "sunken"},
        ]))

        errors = validate_reference_set(ref_set).errors

        assert "Country 'Oman' is classified 2 times" in errors
        assert "Country 'Atlantis' has unknown risk level 'sunken'" in errors


# =============================================================================
# get_reference_set
# =============================================================================


class TestGetReferenceSet:

    def test_unknown_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_reference_set("missing", sets_dir=tmp_path)

    def test_invalid_set_rejected(self, tmp_path):
        write_set(tmp_path, thresholds=[make_threshold_doc(type="barter")])

        with pytest.raises(InvalidReferenceDataError) as exc_info:
            get_reference_set("custom", sets_dir=tmp_path)

        assert exc_info.value.code == "INVALID_REFERENCE_DATA"

    def test_config_trace_logged(self, tmp_path, captured_logs):
        write_set(tmp_path)

        ref_set = get_reference_set("custom", sets_dir=tmp_path)

        traces = [r for r in captured_logs() if r["message"] == "DOA_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == ref_set.checksum
        assert traces[0]["reference_set"] == "custom"
        assert traces[0]["threshold_count"] == 1

    def test_warnings_logged(self, tmp_path, captured_logs):
        write_set(tmp_path)

        get_reference_set("custom", sets_dir=tmp_path)

        warnings = [r for r in captured_logs() if r["message"] == "reference_set_warning"]
        assert warnings
        assert warnings[0]["level"] == "WARNING"


# =============================================================================
# Packaged default set
# =============================================================================


class TestDefaultSet:

    def test_is_valid_without_warnings(self, default_reference_set):
        result = validate_reference_set(default_reference_set)

        assert result.errors == []
        assert result.warnings == []

    def test_defines_every_selectable_key(self, default_reference_set):
        defined = {t.key for t in default_reference_set.thresholds}

        assert selectable_threshold_keys() <= defined
        assert len(defined) == 18

    def test_synthesized_keys_are_not_stored(self, default_reference_set):
        defined = {t.key for t in default_reference_set.thresholds}

        assert ThresholdKey.ESCALATED_5M_30M not in defined
        assert ThresholdKey.SPECIAL_COUNTRY_CEO not in defined

    def test_country_classification(self, default_reference_set):
        levels = {c.name: c.risk_level for c in default_reference_set.countries}

        assert levels["Egypt"] == "special"
        assert levels["Yemen"] == "high_risk"
        assert levels["Saudi Arabia"] == "safe"

    def test_bare_x_counting_disabled(self, default_reference_set):
        source = reference_source_from_set(default_reference_set)

        assert source.fetch_boolean_setting(COUNT_BARE_X_SETTING) is False

    def test_source_serves_domain_values(self, reference_source):
        countries = {c.name: c for c in reference_source.fetch_countries()}

        assert countries["Syria"].risk_level is RiskLevel.HIGH_RISK


# =============================================================================
# Seeding
# =============================================================================


class TestSeed:

    def test_summary_counts(self, session, default_reference_set):
        summary = seed_reference_set(session, default_reference_set)

        approver_rows = sum(len(t.approvers) for t in default_reference_set.thresholds)
        role_names = {a.role for t in default_reference_set.thresholds for a in t.approvers}
        assert summary.thresholds_created == 18
        assert summary.approvers_created == approver_rows
        assert summary.roles_created == len(role_names)
        assert summary.countries_created == len(default_reference_set.countries)
        assert session.execute(
            select(func.count()).select_from(ThresholdApproverModel)
        ).scalar_one() == approver_rows

    def test_existing_roles_reused(self, session, default_reference_set):
        session.add(RoleModel(name="CEO", display_order=0))
        session.flush()

        summary = seed_reference_set(session, default_reference_set)

        ceo_rows = session.execute(
            select(func.count()).select_from(RoleModel).where(RoleModel.name == "CEO")
        ).scalar_one()
        role_names = {a.role for t in default_reference_set.thresholds for a in t.approvers}
        assert ceo_rows == 1
        assert summary.roles_created == len(role_names) - 1
