"""Tests for verification service and status aggregation."""

import pytest
from ttb_verify.config import STANDARD_WARNING_TEXT
from ttb_verify.models.schemas import (
    ApplicationData,
    ExtractedFields,
    FieldResult,
    FieldStatus,
    HeaderEmphasis,
    HeaderFormat,
    ImageExtraction,
    ImageSource,
    MatchType,
    OverallStatus,
    OverrideAction,
)
from ttb_verify.services import verification
from ttb_verify.services.merge import merge_extractions, resolve_conflict
from ttb_verify.services.verification import (
    VerificationService,
    apply_override,
    build_pending_confirmations,
    compute_overall_status,
)


@pytest.fixture
def service():
    """Create verification service instance."""
    return VerificationService()


@pytest.fixture
def application():
    return ApplicationData(
        brand_name="Old Tom Distillery",
        class_type="Kentucky Straight Bourbon Whiskey",
        alcohol_content="45% Alc./Vol.",
        net_contents="750 mL",
        name_address="Old Tom Distillery, Louisville, KY",
    )


def make_extracted(**overrides) -> ExtractedFields:
    """Helper to create a compliant label extraction for testing."""
    fields = dict(
        brand_name="OLD TOM DISTILLERY",
        class_type="Kentucky Straight Bourbon Whiskey",
        alcohol_content="90 Proof",
        net_contents="25.4 FL OZ",
        name_address="Bottled by Old Tom Distillery, Louisville, Kentucky",
        government_warning=STANDARD_WARNING_TEXT,
        government_warning_header_format=HeaderFormat.ALL_CAPS,
        government_warning_header_emphasis=HeaderEmphasis.APPEARS_BOLD_OR_HEAVY,
    )
    fields.update(overrides)
    return ExtractedFields(**fields)


def make_result(status: FieldStatus, name: str = "Brand Name") -> FieldResult:
    return FieldResult(
        field_name=name,
        application_value="expected",
        extracted_value="found",
        status=status,
        match_type=MatchType.FUZZY,
        confidence=0.5,
        details="test",
    )


def by_name(results):
    return {r.field_name: r for r in results}


class TestComputeOverallStatus:
    """Test status aggregation."""

    def test_all_pass(self):
        results = [make_result(FieldStatus.PASS), make_result(FieldStatus.PASS, "Net Contents")]
        assert compute_overall_status(results) == OverallStatus.PASS

    def test_empty(self):
        assert compute_overall_status([]) == OverallStatus.PASS

    def test_fail(self):
        results = [make_result(FieldStatus.PASS), make_result(FieldStatus.FAIL, "Net Contents")]
        assert compute_overall_status(results) == OverallStatus.FAIL

    def test_fail_beats_warning(self):
        results = [make_result(FieldStatus.WARNING), make_result(FieldStatus.FAIL, "Net Contents")]
        assert compute_overall_status(results) == OverallStatus.FAIL

    @pytest.mark.parametrize("status", [FieldStatus.WARNING, FieldStatus.NOT_FOUND])
    def test_review(self, status):
        results = [make_result(FieldStatus.PASS), make_result(status, "Net Contents")]
        assert compute_overall_status(results) == OverallStatus.REVIEW

    def test_accepted_fail_not_blocking(self):
        results = [make_result(FieldStatus.PASS), apply_override(make_result(FieldStatus.FAIL), "accepted")]
        assert compute_overall_status(results) == OverallStatus.PASS

    def test_accepted_override_with_original_status(self):
        """An accepted override neutralizes even if the status was not rewritten."""
        overridden = apply_override(make_result(FieldStatus.FAIL), OverrideAction.ACCEPTED)
        restored = overridden.model_copy(update={"status": FieldStatus.FAIL})
        assert compute_overall_status([restored]) == OverallStatus.PASS

    def test_confirmed_issue_still_blocks(self):
        result = apply_override(make_result(FieldStatus.FAIL), OverrideAction.CONFIRMED_ISSUE)
        assert compute_overall_status([result]) == OverallStatus.FAIL

    def test_idempotent(self):
        results = [make_result(FieldStatus.WARNING), make_result(FieldStatus.PASS, "Net Contents")]
        assert compute_overall_status(results) == compute_overall_status(results)


class TestApplyOverride:
    """Test agent overrides."""

    def test_accepted(self):
        original = make_result(FieldStatus.FAIL)
        result = apply_override(original, OverrideAction.ACCEPTED)
        assert result.status == FieldStatus.OVERRIDDEN
        assert result.agent_override.action == OverrideAction.ACCEPTED
        assert result.agent_override.timestamp.tzinfo is not None
        assert original.status == FieldStatus.FAIL

    def test_confirmed_issue_keeps_status(self):
        result = apply_override(make_result(FieldStatus.FAIL), OverrideAction.CONFIRMED_ISSUE)
        assert result.status == FieldStatus.FAIL
        assert result.agent_override.action == OverrideAction.CONFIRMED_ISSUE


class TestVerify:
    """Test single-label verification."""

    def test_compliant_label(self, service, application):
        result = service.verify(application, make_extracted())
        fields = by_name(result.field_results)

        assert len(result.field_results) == 9
        assert fields["Brand Name"].status == FieldStatus.PASS
        assert fields["Brand Name"].confidence == 1.0
        assert fields["Class/Type"].status == FieldStatus.PASS
        assert fields["Alcohol Content"].status == FieldStatus.PASS
        assert fields["Net Contents"].status == FieldStatus.PASS
        assert fields["Name & Address"].status == FieldStatus.PASS
        assert "Country of Origin" not in fields

    def test_bold_check_needs_confirmation(self, service, application):
        result = service.verify(application, make_extracted())
        assert result.overall_status == OverallStatus.REVIEW
        assert len(result.pending_confirmations) == 1
        assert result.pending_confirmations[0].label == "Header Bold"
        assert result.pending_confirmations[0].ai_assessment == "APPEARS_BOLD_OR_HEAVY"

    def test_confirmed_bold_passes(self, service, application):
        result = service.verify(application, make_extracted())
        results = [
            apply_override(r, OverrideAction.ACCEPTED) if r.status == FieldStatus.WARNING else r
            for r in result.field_results
        ]
        assert compute_overall_status(results) == OverallStatus.PASS

    def test_missing_warning_fails(self, service, application):
        result = service.verify(application, make_extracted(government_warning=None))
        fields = by_name(result.field_results)
        assert fields["Gov Warning - Present"].status == FieldStatus.FAIL
        assert fields["Gov Warning - Text Accuracy"].status == FieldStatus.NOT_FOUND
        assert result.overall_status == OverallStatus.FAIL
        assert result.summary.startswith("❌ Verification failed")

    def test_wrong_abv_fails(self, service, application):
        result = service.verify(application, make_extracted(alcohol_content="40% Alc./Vol."))
        assert by_name(result.field_results)["Alcohol Content"].status == FieldStatus.FAIL
        assert result.overall_status == OverallStatus.FAIL
        assert "Alcohol Content" in result.summary

    def test_country_checked_when_on_application(self, service, application):
        application = application.model_copy(update={"country_of_origin": "France"})
        result = service.verify(application, make_extracted(country_of_origin="Product of France"))
        assert by_name(result.field_results)["Country of Origin"].status == FieldStatus.PASS

    def test_required_field_missing_from_application(self, service, application):
        application = application.model_copy(update={"class_type": ""})
        result = service.verify(application, make_extracted(class_type=None))
        field = by_name(result.field_results)["Class/Type"]
        assert field.status == FieldStatus.NOT_FOUND
        assert field.application_value == ""

    def test_extracted_fields_echoed(self, service, application):
        extracted = make_extracted()
        assert service.verify(application, extracted).extracted_fields == extracted


class TestBuildPendingConfirmations:
    """Test confirmation items."""

    def test_only_confirmation_results(self, service, application):
        results = service.verify(application, make_extracted()).field_results
        pending = build_pending_confirmations(results)
        assert [p.id for p in pending] == ["Gov Warning - Header Bold"]
        assert pending[0].confirmed is False


class TestVerifyMerged:
    """Test multi-image verification."""

    @pytest.fixture
    def merged(self):
        front = ImageExtraction(
            source=ImageSource(image_id="front", image_label="front"),
            fields=make_extracted(brand_name="Old Tom Distillery"),
        )
        back = ImageExtraction(
            source=ImageSource(image_id="back", image_label="back"),
            fields=make_extracted(brand_name="Old Tim Distillery"),
        )
        return merge_extractions([front, back])

    def test_source_attribution(self, service, application, merged):
        result = service.verify_merged(application, merged)
        fields = by_name(result.field_results)

        assert result.image_count == 2
        assert [s.image_id for s in result.images] == ["front", "back"]
        assert fields["Net Contents"].confirmed_on_images == 2
        assert fields["Net Contents"].had_conflict is False
        assert fields["Brand Name"].had_conflict is True
        assert fields["Brand Name"].confirmed_on_images == 1

    def test_unresolved_conflict_reported(self, service, application, merged):
        result = service.verify_merged(application, merged)
        assert len(result.unresolved_conflicts) == 1
        assert result.overall_status != OverallStatus.PASS
        assert "images disagree" in result.summary

    def test_unresolved_conflict_blocks_pass(self, service, application, merged, monkeypatch):
        """Every field passes, but the open conflict still forces REVIEW."""
        monkeypatch.setattr(verification, "verify_government_warning", lambda extracted, expected: [])
        application = application.model_copy(update={"brand_name": "Old Tim Distillery"})

        result = service.verify_merged(application, merged)
        assert all(r.status == FieldStatus.PASS for r in result.field_results)
        assert result.overall_status == OverallStatus.REVIEW

        resolved = resolve_conflict(merged, "brand_name", "Old Tim Distillery")
        result = service.verify_merged(application, resolved)
        assert result.unresolved_conflicts == ()
        assert result.overall_status == OverallStatus.PASS

    def test_resolution_recorded(self, service, application, merged):
        resolved = resolve_conflict(merged, "brand_name", "Old Tom Distillery")
        result = service.verify_merged(application, resolved)
        brand = by_name(result.field_results)["Brand Name"]

        assert brand.status == FieldStatus.PASS
        assert brand.conflict_resolution.selected_value == "Old Tom Distillery"
        assert brand.conflict_resolution.selected_from_images == ("front",)
        assert brand.conflict_resolution.rejected_values[0].value == "Old Tim Distillery"
        assert brand.conflict_resolution.rejected_values[0].from_images == ("back",)
