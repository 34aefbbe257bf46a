"""
Unit tests for the compliance decision engine
"""
from unittest.mock import AsyncMock

import pytest

from compliance_api.core.exceptions import OracleError
from compliance_api.schemas.compliance import ComplianceCheckRequest
from compliance_api.services.compliance_service import ComplianceService


@pytest.fixture
def service(populated_store, explanation_oracle, noop_cache_getter):
    return ComplianceService(populated_store, explanation_oracle, cache_getter=noop_cache_getter)


class TestCheckHSCodeCompliance:
    """Test cases for the HS code decision rules"""

    async def test_exact_free_code(self, service, explanation_oracle):
        result = await service.check_hs_code_compliance("85171200")

        assert result.exists is True
        assert result.allowed is True
        assert result.policy == "Free"
        assert result.description == "Telephone sets"
        assert explanation_oracle.prompts == []

    async def test_exact_restricted_code(self, service):
        result = await service.check_hs_code_compliance("71081200")

        assert result.exists is True
        assert result.allowed is False
        assert result.policy == "Restricted"

    async def test_chapter_with_free_category(self, service):
        result = await service.check_hs_code_compliance("85179999")

        assert result.exists is True
        assert result.allowed is True
        assert result.policy == "Free"
        assert result.description == "Falls under chapter 8517 which has some free categories"

    async def test_chapter_without_free_category(self, service):
        result = await service.check_hs_code_compliance("71089999")

        assert result.allowed is False
        assert result.policy == "Restricted"
        assert result.description == "Falls under chapter 7108 which has no free categories"

    async def test_two_digit_chapter_fallback(self, service):
        result = await service.check_hs_code_compliance("93999999")

        assert result.exists is True
        assert result.allowed is False
        assert result.policy == "Prohibited"
        assert result.description == "Falls under chapter 9399 which has no free categories"

    async def test_chapter_fallback_pools_four_and_two_digit_matches(self, store, explanation_oracle, noop_cache_getter):
        from compliance_api.schemas.knowledge import HSCodeEntry

        await store.merge(
            {
                "12340000": HSCodeEntry(code="12340000", description="Seeds for sowing", policy="Restricted"),
                "12990000": HSCodeEntry(code="12990000", description="Other seeds", policy="Free"),
            },
            {},
            []
        )
        service = ComplianceService(store, explanation_oracle, cache_getter=noop_cache_getter)

        result = await service.check_hs_code_compliance("12349999")

        assert result.allowed is True
        assert result.description == "Falls under chapter 1234 which has some free categories"

    async def test_unknown_code_uses_oracle_reason(self, service, explanation_oracle):
        result = await service.check_hs_code_compliance("00000000")

        assert result.exists is False
        assert result.allowed is False
        assert result.reason == explanation_oracle.text
        assert "00000000" in explanation_oracle.prompts[0]

    async def test_short_code_skips_chapter_fallback(self, service, explanation_oracle):
        result = await service.check_hs_code_compliance("85")

        assert result.exists is False
        assert len(explanation_oracle.prompts) == 1

    async def test_unknown_code_oracle_failure_uses_fallback(self, populated_store, noop_cache_getter):
        oracle = AsyncMock()
        oracle.explain.side_effect = OracleError("timeout")
        service = ComplianceService(populated_store, oracle, cache_getter=noop_cache_getter)

        result = await service.check_hs_code_compliance("00000000")

        assert result.reason == ("The HS Code 00000000 was not found in the export compliance regulations. "
                                 "Please verify the code and try again.")

    async def test_empty_oracle_text_uses_fallback(self, populated_store, noop_cache_getter):
        oracle = AsyncMock()
        oracle.explain.return_value = "   "
        service = ComplianceService(populated_store, oracle, cache_getter=noop_cache_getter)

        result = await service.check_hs_code_compliance("00000000")

        assert result.reason.startswith("The HS Code 00000000 was not found")


class TestExplanationCache:
    """Explanation caching around the oracle"""

    async def test_cached_explanation_skips_oracle(self, populated_store, explanation_oracle):
        cache = AsyncMock()
        cache.get_cached_explanation.return_value = "Cached reason"

        async def cache_getter():
            return cache

        service = ComplianceService(populated_store, explanation_oracle, cache_getter=cache_getter)

        result = await service.check_hs_code_compliance("00000000")

        assert result.reason == "Cached reason"
        assert explanation_oracle.prompts == []

    async def test_oracle_output_is_cached(self, populated_store, explanation_oracle):
        cache = AsyncMock()
        cache.get_cached_explanation.return_value = None

        async def cache_getter():
            return cache

        service = ComplianceService(populated_store, explanation_oracle, cache_getter=cache_getter)

        await service.check_hs_code_compliance("00000000")

        cache.cache_explanation.assert_called_once()
        assert cache.cache_explanation.call_args[0][1] == explanation_oracle.text

    async def test_fallback_text_is_not_cached(self, populated_store):
        cache = AsyncMock()
        cache.get_cached_explanation.return_value = None
        oracle = AsyncMock()
        oracle.explain.side_effect = OracleError("down")

        async def cache_getter():
            return cache

        service = ComplianceService(populated_store, oracle, cache_getter=cache_getter)

        await service.check_hs_code_compliance("00000000")

        cache.cache_explanation.assert_not_called()

    async def test_cache_failure_does_not_fail_check(self, populated_store, explanation_oracle):
        async def cache_getter():
            raise ConnectionError("redis down")

        service = ComplianceService(populated_store, explanation_oracle, cache_getter=cache_getter)

        result = await service.check_hs_code_compliance("00000000")

        assert result.reason == explanation_oracle.text


class TestCheckExportCompliance:
    """Test cases for request-level compliance checks"""

    async def test_missing_fields(self, service):
        with pytest.raises(ValueError, match="Missing required fields"):
            await service.check_export_compliance(ComplianceCheckRequest())

    async def test_blank_fields_count_as_missing(self, service):
        with pytest.raises(ValueError):
            await service.check_export_compliance(ComplianceCheckRequest(hs_code="  ", item_name=""))

    async def test_allowed_by_hs_code(self, service):
        response = await service.check_export_compliance(ComplianceCheckRequest(hs_code="85171200"))

        assert response.status is True
        assert response.allowed is True
        assert response.hs_code == "85171200"
        assert response.policy == "Free"
        assert response.description == "Telephone sets"
        assert response.conditions == "Standard export conditions apply"

    async def test_restricted_code_has_reason(self, service, explanation_oracle):
        response = await service.check_export_compliance(ComplianceCheckRequest(hs_code="71081200"))

        assert response.status is False
        assert response.allowed is False
        assert response.hs_code == "71081200"
        assert response.policy == "Restricted"
        assert response.reason == explanation_oracle.text
        assert "71081200" in explanation_oracle.prompts[0]

    async def test_restricted_code_oracle_failure_fallback(self, populated_store, noop_cache_getter):
        oracle = AsyncMock()
        oracle.explain.side_effect = OracleError("timeout")
        service = ComplianceService(populated_store, oracle, cache_getter=noop_cache_getter)

        response = await service.check_export_compliance(ComplianceCheckRequest(hs_code="93019000"))

        assert response.reason == ("Export not allowed for HS Code 93019000 with policy Prohibited. "
                                   "Unable to determine a reason due to an AI processing error.")

    async def test_unknown_code(self, service, explanation_oracle):
        response = await service.check_export_compliance(ComplianceCheckRequest(hs_code="00000000"))

        assert response.status is False
        assert response.allowed is False
        assert response.queried_hs_code == "00000000"
        assert response.reason == explanation_oracle.text

    async def test_hs_code_takes_precedence(self, service):
        response = await service.check_export_compliance(
            ComplianceCheckRequest(hs_code="71081200", item_name="telephone sets", item_description="Telephone sets")
        )

        assert response.hs_code == "71081200"
        assert response.allowed is False

    async def test_item_name_resolution(self, service):
        response = await service.check_export_compliance(ComplianceCheckRequest(item_name="Cotton Shirts"))

        assert response.allowed is True
        assert response.hs_code == "61051000"
        assert response.queried_item_name == "Cotton Shirts"

    async def test_item_name_substring_resolution(self, service):
        response = await service.check_export_compliance(ComplianceCheckRequest(item_name="unwrought"))

        assert response.hs_code == "71081200"
        assert response.allowed is False

    async def test_item_name_not_found(self, service, explanation_oracle):
        response = await service.check_export_compliance(ComplianceCheckRequest(item_name="spaceship"))

        assert response.status is False
        assert response.allowed is False
        assert response.reason == ("Could not find an HS code matching item name: spaceship. "
                                   "Please provide a valid HS code.")
        assert explanation_oracle.prompts == []

    async def test_item_name_takes_precedence_over_description(self, service):
        response = await service.check_export_compliance(
            ComplianceCheckRequest(item_name="spaceship", item_description="Telephone sets")
        )

        assert response.allowed is False
        assert response.queried_item_name == "spaceship"

    async def test_description_resolution(self, service):
        response = await service.check_export_compliance(ComplianceCheckRequest(item_description="TELEPHONE SETS"))

        assert response.allowed is True
        assert response.hs_code == "85171200"

    async def test_description_not_found(self, service, explanation_oracle):
        response = await service.check_export_compliance(ComplianceCheckRequest(item_description=" Moon Rock "))

        assert response.status is False
        assert response.queried_description == "moon rock"
        assert response.reason == explanation_oracle.text

    async def test_description_not_found_oracle_failure(self, populated_store, noop_cache_getter):
        oracle = AsyncMock()
        oracle.explain.side_effect = RuntimeError("boom")
        service = ComplianceService(populated_store, oracle, cache_getter=noop_cache_getter)

        response = await service.check_export_compliance(ComplianceCheckRequest(item_description="moon rock"))

        assert response.reason == ('No matching HS code found for description "moon rock". '
                                   'Unable to determine a specific reason due to an AI processing error.')

    async def test_camel_case_request(self, service):
        request = ComplianceCheckRequest.model_validate({"hsCode": "85171200", "itemWeight": "2kg"})

        response = await service.check_export_compliance(request)

        assert response.model_dump(by_alias=True, exclude_none=True) == {
            "status": True,
            "allowed": True,
            "hsCode": "85171200",
            "policy": "Free",
            "description": "Telephone sets",
            "conditions": "Standard export conditions apply",
        }


class TestFindByDescription:
    """Test cases for description-only lookup"""

    async def test_exact_match(self, service):
        response = service.find_by_description("Telephone sets")

        assert response.model_dump(by_alias=True, exclude_none=True) == {"hsCode": "85171200"}

    async def test_partial_match(self, service):
        response = service.find_by_description("gold")

        assert response.status is True
        assert response.hs_code == "71081200"
        assert response.note == "Found via partial match"

    async def test_no_match(self, service):
        response = service.find_by_description("spaceship")

        assert response.status is False
        assert response.hs_code is None
        assert response.error == "No matching HS code found for this description"

    async def test_missing_description(self, service):
        with pytest.raises(ValueError, match="Missing required field: description"):
            service.find_by_description("  ")
