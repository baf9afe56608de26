"""
Tests for configuration loading and transport assembly.
"""

import logging

import pytest

from layover.config import Config, build_transport, load_config
from layover.config.resolver import resolve_config
from layover.core.retry import ExponentialBackoff, Retry, StatusCodePolicy
from layover.core.throttle import Throttle
from layover.core.types import unwrap_all
from layover.exceptions import ConfigurationError
from layover.testing import StubTransport, make_response
from layover.transport import AiohttpTransport
from layover.transports import AcceptCompressed, Header, Log, PostCompressed, RequestID


def chain_types(transport):
    """Types of every transport in a chain, outermost first."""
    types = []
    while True:
        types.append(type(transport))
        if not hasattr(transport, "unwrap"):
            return types
        transport = transport.unwrap()


@pytest.fixture
def stub():
    return StubTransport([make_response(200)])


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load(self, tmp_path, monkeypatch):
        """Test YAML is loaded and ${VAR} references are substituted."""
        monkeypatch.setenv("API_TOKEN", "s3cret")
        path = tmp_path / "layover.yaml"
        path.write_text(
            "transport:\n"
            "  headers:\n"
            '    Authorization: "Bearer ${API_TOKEN}"\n'
            "  throttle: 5\n"
        )

        config = load_config(path)

        assert config.get("transport.headers.Authorization") == "Bearer s3cret"
        assert config.transport["throttle"] == 5
        assert "transport.throttle" in config
        assert "transport.missing" not in config
        assert isinstance(config["transport"], Config)

    def test_unset_variable_is_kept(self, tmp_path, monkeypatch):
        """Test an unset variable reference is left as written."""
        monkeypatch.delenv("LAYOVER_UNSET_VAR", raising=False)
        path = tmp_path / "layover.yaml"
        path.write_text("transport:\n  headers:\n    X-Key: ${LAYOVER_UNSET_VAR}\n")

        assert load_config(path).get("transport.headers.X-Key") == "${LAYOVER_UNSET_VAR}"

    def test_env_override(self, tmp_path):
        """Test the environment file is merged over the base file."""
        (tmp_path / "layover.yaml").write_text(
            "transport:\n  retry: {max_attempts: 3, max_elapsed: 10}\n  throttle: 5\n"
        )
        (tmp_path / "layover.prod.yaml").write_text("transport:\n  retry: {max_attempts: 6}\n")

        config = load_config(tmp_path / "layover.yaml", env="prod")

        assert config.get("transport.retry") == {"max_attempts": 6, "max_elapsed": 10}
        assert config.get("transport.throttle") == 5

    def test_missing_env_file_is_ignored(self, tmp_path):
        """Test a missing environment file leaves the base config."""
        (tmp_path / "layover.yaml").write_text("transport:\n  throttle: 5\n")
        assert load_config(tmp_path / "layover.yaml", env="staging").get("transport.throttle") == 5

    def test_missing_file(self, tmp_path):
        """Test a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test a YAML syntax error raises ConfigurationError with its location."""
        path = tmp_path / "layover.yaml"
        path.write_text("transport:\n  headers: [unclosed\n")

        with pytest.raises(ConfigurationError, match="layover.yaml"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        """Test a top-level list is rejected."""
        path = tmp_path / "layover.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(path)

    def test_fallback_value(self):
        """Test ${VAR:-fallback} uses the fallback only when the variable is unset."""
        data = {"a": "${LAYOVER_HOST:-localhost}", "b": ["${LAYOVER_PORT:-8080}"], "c": 3}
        assert resolve_config(data, environ={"LAYOVER_PORT": "9000"}) == {"a": "localhost", "b": ["9000"], "c": 3}

    def test_env_placeholder(self):
        """Test {env} is replaced by the environment name."""
        assert resolve_config({"base_url": "https://{env}.example.com"}, env="prod") == {
            "base_url": "https://prod.example.com"
        }


class TestBuildTransport:
    """Tests for build_transport()."""

    def test_full_chain_order(self, stub):
        """Test every decorator is nested in the fixed order."""
        config = {
            "transport": {
                "retry": {"max_attempts": 4},
                "throttle": {"qps": 5},
                "request_id": True,
                "post_compressed": "gzip",
                "accept_compressed": True,
                "log": {"level": "debug"},
                "headers": {"Authorization": "Bearer x"},
            }
        }

        transport = build_transport(config, stub)

        assert chain_types(transport) == [
            Retry,
            Throttle,
            RequestID,
            PostCompressed,
            AcceptCompressed,
            Log,
            Header,
            StubTransport,
        ]
        assert transport.policy.max_attempts == 4
        assert transport.unwrap().qps == 5
        assert unwrap_all(transport) is stub

    def test_minimal_chain(self, stub):
        """Test an empty section only adds RequestID."""
        assert chain_types(build_transport({}, stub)) == [RequestID, StubTransport]

    def test_default_leaf(self):
        """Test the default leaf is an AiohttpTransport using the section settings."""
        transport = build_transport(Config({"transport": {"max_redirects": 3, "timeout": 5, "request_id": False}}))

        assert isinstance(transport, AiohttpTransport)
        assert transport.max_redirects == 3
        assert transport.timeout.total == 5

    def test_log_settings(self, stub):
        """Test log level and body flag are applied."""
        transport = build_transport({"transport": {"log": {"level": "WARNING", "include_response_body": True}}}, stub)
        log = transport.unwrap()

        assert isinstance(log, Log)
        assert log.level == logging.WARNING
        assert log.include_response_body is True

    def test_log_requires_request_id(self, stub):
        """Test disabling RequestID while logging is rejected."""
        with pytest.raises(ConfigurationError, match="request_id"):
            build_transport({"transport": {"log": True, "request_id": False}}, stub)

    def test_invalid_log_level(self, stub):
        with pytest.raises(ConfigurationError, match="level"):
            build_transport({"transport": {"log": {"level": "LOUD"}}}, stub)

    def test_status_codes(self, stub):
        """Test extra status codes wrap the backoff in StatusCodePolicy."""
        transport = build_transport({"transport": {"retry": {"status_codes": [500, "408"]}}}, stub)

        assert isinstance(transport.policy, StatusCodePolicy)
        assert transport.policy.codes == frozenset({500, 408})
        assert isinstance(transport.policy.policy, ExponentialBackoff)

    @pytest.mark.parametrize(
        "retry",
        [{"max_attempts": -1}, {"exponent_base": 0}, {"max_elapsed": "soon"}],
    )
    def test_invalid_retry(self, stub, retry):
        """Test invalid retry settings raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="retry"):
            build_transport({"transport": {"retry": retry}}, stub)

    @pytest.mark.parametrize("throttle", [0, {"qps": 0}, False])
    def test_disabled_throttle(self, stub, throttle):
        """Test a zero or false throttle is left out of the chain."""
        transport = build_transport({"transport": {"throttle": throttle}}, stub)
        assert Throttle not in chain_types(transport)

    def test_post_compressed_mapping(self, stub):
        transport = build_transport({"transport": {"post_compressed": {"encoding": "zstd", "level": 5}}}, stub)
        post = transport.unwrap()

        assert isinstance(post, PostCompressed)
        assert (post.encoding, post.level) == ("zstd", 5)

    def test_invalid_post_compressed(self, stub):
        with pytest.raises(ConfigurationError, match="invalid encoding"):
            build_transport({"transport": {"post_compressed": "lzma"}}, stub)

    def test_invalid_section_type(self, stub):
        with pytest.raises(ConfigurationError, match="transport.retry"):
            build_transport({"transport": {"retry": "always"}}, stub)
