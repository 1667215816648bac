"""Tests for descriptor fragment merging and sealing."""

import pytest

from connect_engine.common.config import ConnectSettings
from connect_engine.descriptor.builder import DescriptorBuilder, merge_fragment


def make_settings(**overrides) -> ConnectSettings:
    defaults = {
        "addon_key": "my-addon",
        "addon_name": "My Add-on",
        "addon_description": "Does things",
        "base_url": "https://example.com/my/path",
        "addon_path": "/jira/addon",
    }
    defaults.update(overrides)
    return ConnectSettings(**defaults)


class TestMergeFragment:
    def test_adds_new_keys(self):
        target = {"key": "a"}
        merge_fragment(target, {"lifecycle": {"installed": "/i"}})
        assert target == {"key": "a", "lifecycle": {"installed": "/i"}}

    def test_nested_dicts_merge(self):
        target = {"modules": {"webhooks": []}}
        merge_fragment(target, {"modules": {"generalPages": [{"key": "p"}]}})
        assert target == {"modules": {"webhooks": [], "generalPages": [{"key": "p"}]}}

    def test_lists_concatenate(self):
        target = {"modules": {"webhooks": [{"event": "a"}]}}
        merge_fragment(target, {"modules": {"webhooks": [{"event": "b"}]}})
        assert [w["event"] for w in target["modules"]["webhooks"]] == ["a", "b"]

    def test_equal_scalars_accepted(self):
        target = {"key": "a"}
        merge_fragment(target, {"key": "a"})
        assert target == {"key": "a"}

    def test_conflicting_scalars_rejected(self):
        with pytest.raises(ValueError, match="lifecycle.installed"):
            merge_fragment(
                {"lifecycle": {"installed": "/a"}},
                {"lifecycle": {"installed": "/b"}},
            )


class TestDescriptorBuilder:
    def test_identity_from_settings(self):
        doc = DescriptorBuilder.from_settings(make_settings()).build().to_json()
        assert doc["key"] == "my-addon"
        assert doc["name"] == "My Add-on"
        assert doc["description"] == "Does things"
        assert doc["baseUrl"] == "https://example.com/my/path/jira/addon"
        assert doc["authentication"] == {"type": "jwt"}
        assert doc["scopes"] == ["read", "write"]
        assert doc["enableLicensing"] is False
        assert doc["links"] == {"self": "https://example.com/my/path/jira/addon/meta/descriptor"}
        assert "vendor" not in doc

    def test_vendor_included_when_configured(self):
        settings = make_settings(vendor_name="Acme", vendor_url="https://acme.test")
        doc = DescriptorBuilder.from_settings(settings).build().to_json()
        assert doc["vendor"] == {"name": "Acme", "url": "https://acme.test"}

    def test_fragments_merged_in_order(self):
        builder = DescriptorBuilder.from_settings(make_settings())
        builder.add({"lifecycle": {"installed": "/meta/installed"}})
        builder.add({"modules": {"webhooks": [{"event": "a", "url": "/webhook/a"}]}})
        doc = builder.build().to_json()
        assert doc["lifecycle"] == {"installed": "/meta/installed"}
        assert doc["modules"]["webhooks"] == [{"event": "a", "url": "/webhook/a"}]

    def test_add_after_build_rejected(self):
        builder = DescriptorBuilder.from_settings(make_settings())
        builder.build()
        assert builder.sealed
        with pytest.raises(RuntimeError):
            builder.add({"lifecycle": {}})

    def test_build_is_stable(self):
        builder = DescriptorBuilder.from_settings(make_settings())
        assert builder.build() is builder.build()

    def test_descriptor_is_immutable(self):
        descriptor = DescriptorBuilder.from_settings(make_settings()).build()
        doc = descriptor.to_json()
        doc["key"] = "changed"
        doc["scopes"].append("admin")
        assert descriptor["key"] == "my-addon"
        assert descriptor["scopes"] == ["read", "write"]

    def test_fragment_copied_on_add(self):
        fragment = {"modules": {"webhooks": [{"event": "a"}]}}
        builder = DescriptorBuilder.from_settings(make_settings())
        builder.add(fragment)
        fragment["modules"]["webhooks"].append({"event": "b"})
        assert len(builder.build()["modules"]["webhooks"]) == 1

    def test_dumps(self):
        descriptor = DescriptorBuilder.from_settings(make_settings()).build()
        assert '"key": "my-addon"' in descriptor.dumps()
