"""Tests for entity tables and configuration validation."""
import pytest

from ipam_reconciler.errors import ConfigValidationError
from ipam_reconciler.reconcile import ENTITY_TYPES, ConfigValidator, Operation, get_descriptor
from ipam_reconciler.reconcile.entities import DNS_RR, IP6_ALIAS, IP_ALIAS


class TestEntityTables:
    """Tests for the built-in entity descriptors."""

    def test_registry(self):
        assert set(ENTITY_TYPES) == {"dns_rr", "ip6_alias", "ip_alias"}

    def test_unknown_type(self):
        with pytest.raises(KeyError) as exc:
            get_descriptor("dhcp_scope")
        assert "Unknown entity type" in str(exc.value)

    def test_dns_rr_mutable_fields(self):
        assert DNS_RR.mutable_fields == ["value", "ttl"]
        assert DNS_RR.force_new_fields == ["server", "name", "type"]
        assert DNS_RR.updatable

    def test_aliases_are_not_updatable(self):
        assert not IP6_ALIAS.updatable
        assert not IP_ALIAS.updatable
        assert IP6_ALIAS.mutable_fields == []

    def test_alias_resolution_chain_order(self):
        steps = [step.kind for step in IP6_ALIAS.resolution]
        assert steps == ["ip_site", "ip6_address"]
        assert [step.kind for step in IP_ALIAS.resolution] == ["ip_site", "ip_address"]

    def test_delete_endpoints_accept_no_content(self):
        for descriptor in ENTITY_TYPES.values():
            assert {200, 204} <= descriptor.endpoint(Operation.DELETE).success_codes


class TestNormalize:
    """Tests for configuration normalization."""

    def test_defaults_and_uppercase(self):
        validator = ConfigValidator(DNS_RR)
        result = validator.normalize({
            "server": "ns1.example.com",
            "name": " www.example.com ",
            "type": "aaaa",
            "value": "2001:db8::10",
        })
        assert result["type"] == "AAAA"
        assert result["ttl"] == "3600"
        assert result["name"] == "www.example.com"

    def test_values_become_strings(self):
        result = ConfigValidator(DNS_RR).normalize({"ttl": 300})
        assert result["ttl"] == "300"

    def test_alias_type_defaults_to_cname(self):
        result = ConfigValidator(IP6_ALIAS).normalize({"space": "corp"})
        assert result["type"] == "CNAME"

    def test_input_not_mutated(self):
        config = {"type": "a"}
        ConfigValidator(DNS_RR).normalize(config)
        assert config == {"type": "a"}


class TestValidate:
    """Tests for validation rules."""

    def test_valid_dns_record(self, dns_config):
        result = ConfigValidator(DNS_RR).validate(dns_config)
        assert result.valid
        assert result.errors == []

    def test_missing_required(self):
        result = ConfigValidator(DNS_RR).validate({"server": "ns1", "type": "A", "value": "10.0.0.1"})
        assert not result.valid
        assert "Missing required field 'name'" in result.errors

    def test_unknown_field(self, dns_config):
        dns_config["zone"] = "example.com"
        result = ConfigValidator(DNS_RR).validate(dns_config)
        assert not result.valid
        assert any("Unknown field 'zone'" in e for e in result.errors)

    def test_unsupported_record_type(self, dns_config):
        dns_config["type"] = "MX"
        result = ConfigValidator(DNS_RR).validate(dns_config)
        assert not result.valid
        assert any("Unsupported type 'MX'" in e for e in result.errors)

    def test_a_record_needs_ipv4(self, dns_config):
        dns_config["value"] = "2001:db8::1"
        result = ConfigValidator(DNS_RR).validate(dns_config)
        assert not result.valid
        assert any("IPv4" in e for e in result.errors)

    def test_aaaa_record_needs_ipv6(self, dns_config):
        dns_config["type"] = "AAAA"
        result = ConfigValidator(DNS_RR).validate(dns_config)
        assert not result.valid
        assert any("IPv6" in e for e in result.errors)

    def test_cname_value_is_free_form(self, dns_config):
        dns_config["type"] = "CNAME"
        dns_config["value"] = "lb.example.com"
        assert ConfigValidator(DNS_RR).validate(dns_config).valid

    def test_ttl_must_be_numeric(self, dns_config):
        dns_config["ttl"] = "1h"
        result = ConfigValidator(DNS_RR).validate(dns_config)
        assert not result.valid

    def test_ip6_alias_address_family(self, alias6_config):
        assert ConfigValidator(IP6_ALIAS).validate(alias6_config).valid
        alias6_config["address"] = "10.0.0.1"
        result = ConfigValidator(IP6_ALIAS).validate(alias6_config)
        assert not result.valid
        assert any("IPv6" in e for e in result.errors)

    def test_ip_alias_rejects_ipv6(self):
        result = ConfigValidator(IP_ALIAS).validate({
            "space": "corp", "address": "2001:db8::1", "name": "db.example.com",
        })
        assert not result.valid

    def test_alias_type_case_insensitive(self, alias6_config):
        alias6_config["type"] = "a"
        assert ConfigValidator(IP6_ALIAS).validate(alias6_config).valid

    def test_check_raises_with_entity_context(self):
        with pytest.raises(ConfigValidationError) as exc:
            ConfigValidator(DNS_RR).check({"name": "www.example.com", "type": "TXT"})
        assert exc.value.entity_type == "dns_rr"
        assert exc.value.entity_name == "www.example.com"
        assert "www.example.com" in str(exc.value)

    def test_check_normalizes_once(self, dns_config, monkeypatch):
        validator = ConfigValidator(DNS_RR)
        calls = []
        original = validator.normalize

        def counting(config):
            calls.append(config)
            return original(config)

        monkeypatch.setattr(validator, "normalize", counting)
        assert validator.check(dns_config)["type"] == "A"
        assert len(calls) == 1
