"""Unit tests for tool name namespacing.

Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from mcpd_bridge.bridge.namespace import BridgeMode, BridgeScope, decode, encode
from mcpd_bridge.exceptions import ConfigurationError, InvalidToolNameFormat


class TestEncode:
    """Tests for encode()."""

    def test_unified_always_namespaces(self) -> None:
        """Given Unified mode, returns server__tool even with namespacing off."""
        assert encode("filesystem", "read_file", BridgeMode.UNIFIED) == "filesystem__read_file"
        assert encode("filesystem", "read_file", BridgeMode.UNIFIED, False) == "filesystem__read_file"

    def test_individual_namespaced(self) -> None:
        """Given Individual mode with namespacing, returns server__tool."""
        assert encode("github", "create_issue", BridgeMode.INDIVIDUAL, True) == "github__create_issue"

    def test_individual_raw(self) -> None:
        """Given Individual mode without namespacing, returns the raw name."""
        assert encode("github", "create_issue", BridgeMode.INDIVIDUAL, False) == "create_issue"


class TestDecode:
    """Tests for decode()."""

    def test_splits_namespaced_name(self) -> None:
        """Given server__tool, returns (server, tool)."""
        assert decode("filesystem__read_file", BridgeMode.UNIFIED) == ("filesystem", "read_file")

    def test_tool_with_single_underscores(self) -> None:
        """Single underscores belong to the tool name."""
        assert decode("my_server__list_all_items", BridgeMode.UNIFIED) == ("my_server", "list_all_items")

    def test_rejects_multiple_delimiters(self) -> None:
        """Given more than one delimiter, raises InvalidToolNameFormat."""
        with pytest.raises(InvalidToolNameFormat) as exc_info:
            decode("a__b__c", BridgeMode.UNIFIED)

        assert exc_info.value.message == "Invalid tool name format: a__b__c"

    def test_rejects_multiple_delimiters_even_with_target(self) -> None:
        """Ambiguous names are rejected in namespaced Individual mode too."""
        with pytest.raises(InvalidToolNameFormat):
            decode("a__b__c", BridgeMode.INDIVIDUAL, True, "github")

    def test_rejects_plain_name_in_unified(self) -> None:
        """Given a plain name and no target, raises InvalidToolNameFormat."""
        with pytest.raises(InvalidToolNameFormat):
            decode("read_file", BridgeMode.UNIFIED)

    @pytest.mark.parametrize("name", ["__read_file", "filesystem__"])
    def test_rejects_empty_parts(self, name: str) -> None:
        """Given a delimiter with an empty side, raises InvalidToolNameFormat."""
        with pytest.raises(InvalidToolNameFormat):
            decode(name, BridgeMode.UNIFIED)

    def test_raw_mode_routes_everything_to_target(self) -> None:
        """Individual mode without namespacing passes any name to the target."""
        assert decode("odd__name__here", BridgeMode.INDIVIDUAL, False, "github") == ("github", "odd__name__here")

    def test_plain_name_falls_back_to_target_with_warning(self) -> None:
        """Given a plain name in namespaced Individual mode, routes to the target and warns."""
        # Arrange
        with patch("mcpd_bridge.bridge.namespace.log_event") as mock_log:
            # Act
            result = decode("create_issue", BridgeMode.INDIVIDUAL, True, "github")

        # Assert
        assert result == ("github", "create_issue")
        event = mock_log.call_args[0][1]
        assert event.event == "unnamespaced_tool_routed_to_target"
        assert event.server == "github"


class TestBridgeScope:
    """Tests for BridgeScope."""

    def test_unified_key_and_name(self) -> None:
        scope = BridgeScope.unified()

        assert scope.key == "unified"
        assert scope.server_name == "mcpd-bridge"
        assert scope.target_server is None

    def test_individual_keys_distinguish_namespacing(self) -> None:
        """Namespaced and raw scopes for the same server have different keys."""
        assert BridgeScope.individual("github").key == "individual:github:ns"
        assert BridgeScope.individual("github", namespacing=False).key == "individual:github:raw"

    def test_individual_server_name(self) -> None:
        assert BridgeScope.individual("github").server_name == "mcpd-github"

    def test_individual_requires_target(self) -> None:
        """Given Individual mode without a target, raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            BridgeScope(BridgeMode.INDIVIDUAL)

    def test_unified_rejects_target(self) -> None:
        """Given Unified mode with a target, raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            BridgeScope(BridgeMode.UNIFIED, target_server="github")

    def test_unified_rejects_disabled_namespacing(self) -> None:
        with pytest.raises(ConfigurationError):
            BridgeScope(BridgeMode.UNIFIED, namespacing=False)

    def test_encode_decode_through_scope(self) -> None:
        """A scope decodes the names it encodes."""
        # Arrange
        scope = BridgeScope.individual("github", namespacing=False)

        # Act
        external = scope.encode("github", "create_issue")

        # Assert
        assert external == "create_issue"
        assert scope.decode(external) == ("github", "create_issue")
