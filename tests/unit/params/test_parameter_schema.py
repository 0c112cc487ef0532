"""Unit tests for parameter declaration and the pre-flight check."""

import pytest
import yaml

from pipewrap.errors import MissingParameter, PipelineError
from pipewrap.params import (
    NotReady,
    ParameterDefinition,
    ParameterSchema,
    Ready,
    parse_bool,
)
from pipewrap.types import ParameterType


def zabbix_like_schema(handshake: bool = True) -> ParameterSchema:
    return ParameterSchema.of(
        "zabbix-agent",
        [
            ParameterDefinition("IP_LIST", required=True),
            ParameterDefinition("SSH_LOGIN", required=True),
            ParameterDefinition("SSH_PASSWORD", type=ParameterType.PASSWORD, required=True, trim=False),
            ParameterDefinition("INSTALL_AGENT_V2", type=ParameterType.BOOLEAN, default=True),
            ParameterDefinition(
                "ZABBIX_AGENT_VERSION", type=ParameterType.CHOICE, choices=("5.0", "4.0"), required=True
            ),
        ],
        handshake=handshake,
    )


COMPLETE = {
    "IP_LIST": "10.0.0.5",
    "SSH_LOGIN": "deploy",
    "SSH_PASSWORD": "pw",
    "INSTALL_AGENT_V2": "true",
    "ZABBIX_AGENT_VERSION": "5.0",
}


class TestPreflight:
    """Ready, NotReady and MissingParameter outcomes."""

    def test_ready_with_coerced_values(self):
        result = zabbix_like_schema().check(COMPLETE)
        assert isinstance(result, Ready)
        assert result.ready
        assert result.values["INSTALL_AGENT_V2"] is True
        assert result.values["ZABBIX_AGENT_VERSION"] == "5.0"

    def test_values_are_read_only(self):
        result = zabbix_like_schema().check(COMPLETE)
        with pytest.raises(TypeError):
            result.values["IP_LIST"] = "other"

    def test_absent_parameter_is_handshake(self):
        environ = dict(COMPLETE)
        del environ["INSTALL_AGENT_V2"]
        result = zabbix_like_schema().check(environ)
        assert isinstance(result, NotReady)
        assert not result.ready
        assert result.absent == ("INSTALL_AGENT_V2",)
        assert result.schema.pipeline == "zabbix-agent"

    def test_no_handshake_uses_defaults(self):
        schema = ParameterSchema.of(
            "script-runner",
            [ParameterDefinition("GIT_BRANCH", default="master", required=True)],
            handshake=False,
        )
        assert schema.check({}).values == {"GIT_BRANCH": "master"}

    def test_missing_required_listed_in_declaration_order(self):
        environ = dict(COMPLETE, IP_LIST="  ", SSH_PASSWORD="")
        with pytest.raises(MissingParameter) as exc_info:
            zabbix_like_schema().check(environ)
        assert exc_info.value.names == ["IP_LIST", "SSH_PASSWORD"]
        assert exc_info.value.pipeline == "zabbix-agent"
        assert "IP_LIST, SSH_PASSWORD" in str(exc_info.value)

    def test_whitespace_password_counts_as_blank(self):
        with pytest.raises(MissingParameter):
            zabbix_like_schema().check(dict(COMPLETE, SSH_PASSWORD="   "))

    def test_values_trimmed(self):
        result = zabbix_like_schema().check(dict(COMPLETE, SSH_LOGIN="  deploy \n"))
        assert result.values["SSH_LOGIN"] == "deploy"

    def test_password_not_trimmed(self):
        result = zabbix_like_schema().check(dict(COMPLETE, SSH_PASSWORD=" pw "))
        assert result.values["SSH_PASSWORD"] == " pw "

    def test_invalid_choice(self):
        with pytest.raises(PipelineError) as exc_info:
            zabbix_like_schema().check(dict(COMPLETE, ZABBIX_AGENT_VERSION="6.0"))
        assert exc_info.value.code == "PARAMETER_INVALID"
        assert "ZABBIX_AGENT_VERSION" in exc_info.value.message

    def test_blank_optional_choice_rejected(self):
        schema = ParameterSchema.of(
            "p",
            [ParameterDefinition("MODE", type=ParameterType.CHOICE, choices=("fast", "safe"))],
        )
        with pytest.raises(PipelineError) as exc_info:
            schema.check({"MODE": "  "})
        assert exc_info.value.code == "PARAMETER_INVALID"

    def test_blank_choice_allowed_when_listed(self):
        schema = ParameterSchema.of(
            "p",
            [ParameterDefinition("MODE", type=ParameterType.CHOICE, choices=("", "safe"))],
        )
        assert schema.check({"MODE": ""}).values == {"MODE": ""}

    def test_blank_required_choice_is_missing(self):
        with pytest.raises(MissingParameter) as exc_info:
            zabbix_like_schema().check(dict(COMPLETE, ZABBIX_AGENT_VERSION=""))
        assert exc_info.value.names == ["ZABBIX_AGENT_VERSION"]

    def test_invalid_boolean(self):
        with pytest.raises(PipelineError) as exc_info:
            zabbix_like_schema().check(dict(COMPLETE, INSTALL_AGENT_V2="maybe"))
        assert exc_info.value.code == "PARAMETER_INVALID"


class TestParameterDefinition:
    """Defaults and coercion."""

    def test_effective_defaults(self):
        assert ParameterDefinition("S").effective_default == ""
        assert ParameterDefinition("B", type=ParameterType.BOOLEAN).effective_default is False
        choice = ParameterDefinition("C", type=ParameterType.CHOICE, choices=("a", "b"))
        assert choice.effective_default == "a"

    def test_choice_requires_choices(self):
        with pytest.raises(ValueError):
            ParameterDefinition("C", type=ParameterType.CHOICE)

    def test_describe_hides_password_default(self):
        data = ParameterDefinition("P", type=ParameterType.PASSWORD, default="secret").describe()
        assert "default" not in data
        assert data["type"] == "password"

    def test_describe_choice(self):
        data = ParameterDefinition("C", type=ParameterType.CHOICE, choices=("5.0", "4.0")).describe()
        assert data["choices"] == ["5.0", "4.0"]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("Yes", True), ("1", True), ("false", False), ("", False), ("off", False)],
    )
    def test_parse_bool(self, raw, expected):
        assert parse_bool(raw) is expected

    def test_parse_bool_rejects(self):
        with pytest.raises(ValueError):
            parse_bool("perhaps")


class TestSchema:
    """Schema helpers."""

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ParameterSchema.of("p", [ParameterDefinition("A"), ParameterDefinition("A")])

    def test_names_and_get(self):
        schema = zabbix_like_schema()
        assert schema.names[0] == "IP_LIST"
        assert schema.get("SSH_LOGIN").required
        assert schema.get("NOPE") is None

    def test_to_yaml(self):
        data = yaml.safe_load(zabbix_like_schema().to_yaml())
        assert data["pipeline"] == "zabbix-agent"
        assert [p["name"] for p in data["parameters"]][:2] == ["IP_LIST", "SSH_LOGIN"]
