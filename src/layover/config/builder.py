"""
Build a transport chain from configuration.

Example ``layover.yaml``::

    transport:
      max_redirects: 10
      timeout: 30
      retry: {max_attempts: 3, max_elapsed: 10, exponent_base: 2, status_codes: [500]}
      throttle: {qps: 5}
      request_id: true
      accept_compressed: true
      post_compressed: {encoding: gzip, level: 3}
      log: {level: INFO, include_response_body: false}
      headers:
        Authorization: "Bearer ${API_TOKEN}"

Decorators are always nested in the same order, outermost first:
Retry, Throttle, RequestID, PostCompressed, AcceptCompressed, Log, Header.
"""

from collections.abc import Mapping
from typing import Any

from layover.config.loader import Config
from layover.core.retry import ExponentialBackoff, Retry, StatusCodePolicy
from layover.core.throttle import Throttle
from layover.core.types import Transport
from layover.exceptions import ConfigurationError
from layover.transport import AiohttpTransport
from layover.transports import AcceptCompressed, Header, Log, PostCompressed, RequestID
from layover.utils.logging import LEVEL_MAP


def _section(settings: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    """Normalize ``key: true``, ``key: false`` and ``key: {...}`` to a dict or None."""
    value = settings.get(key)
    if value is None or value is False:
        return None
    if value is True:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    raise ConfigurationError(f"transport.{key} must be a boolean or a mapping, got {type(value).__name__}")


def _number(section: Mapping[str, Any], key: str, default: float, name: str) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name}.{key} must be a number, got {value!r}") from None


def build_transport(config: Config | Mapping[str, Any], transport: Transport | None = None) -> Transport:
    """
    Assemble the decorator chain described by the ``transport`` section.

    Args:
        config: Config object, or the raw configuration mapping
        transport: Leaf transport (default: AiohttpTransport built from the same section)

    Returns:
        The outermost transport of the chain

    Raises:
        ConfigurationError: A setting has an invalid value
    """
    data = config.data if isinstance(config, Config) else config
    settings = data.get("transport") or {}
    if not isinstance(settings, Mapping):
        raise ConfigurationError("transport must be a mapping")

    if transport is None:
        timeout = settings.get("timeout")
        transport = AiohttpTransport(
            max_redirects=int(_number(settings, "max_redirects", 10, "transport")),
            timeout=None if timeout is None else _number(settings, "timeout", 0, "transport"),
        )

    headers = settings.get("headers")
    if headers:
        if not isinstance(headers, Mapping):
            raise ConfigurationError("transport.headers must be a mapping")
        transport = Header(transport, headers)

    log = _section(settings, "log")
    if log is not None:
        level_name = str(log.get("level", "INFO")).upper()
        if level_name not in LEVEL_MAP:
            raise ConfigurationError(f"transport.log.level must be one of {sorted(LEVEL_MAP)}, got {level_name!r}")
        transport = Log(
            transport,
            level=LEVEL_MAP[level_name],
            include_response_body=bool(log.get("include_response_body", False)),
        )

    if settings.get("accept_compressed"):
        transport = AcceptCompressed(transport)

    post = settings.get("post_compressed")
    if post:
        if isinstance(post, str):
            post = {"encoding": post}
        if not isinstance(post, Mapping):
            raise ConfigurationError("transport.post_compressed must be an encoding name or a mapping")
        level = post.get("level")
        transport = PostCompressed(transport, post.get("encoding", ""), None if level is None else int(level))

    if settings.get("request_id", True):
        transport = RequestID(transport)
    elif log is not None:
        raise ConfigurationError("transport.log requires transport.request_id")

    throttle = settings.get("throttle")
    if throttle is not None and throttle is not False:
        section = throttle if isinstance(throttle, Mapping) else {"qps": throttle}
        qps = _number(section, "qps", 0, "transport.throttle")
        if qps > 0:
            transport = Throttle(transport, qps=qps)

    retry = _section(settings, "retry")
    if retry is not None:
        try:
            policy = ExponentialBackoff(
                max_attempts=int(_number(retry, "max_attempts", 3, "transport.retry")),
                max_elapsed=_number(retry, "max_elapsed", 10.0, "transport.retry"),
                exponent_base=_number(retry, "exponent_base", 2.0, "transport.retry"),
            )
        except ValueError as e:
            raise ConfigurationError(f"transport.retry: {e}") from e
        codes = retry.get("status_codes")
        transport = Retry(transport, StatusCodePolicy(codes=[int(c) for c in codes], policy=policy) if codes else policy)

    return transport
