"""HTTP access to the OVMS config API and writing of its multi-model config file."""

from __future__ import annotations

import logging
import os
import urllib.error
import urllib.request
from collections.abc import Iterable
from datetime import timedelta

from meshadapter.ovms_modelconfig import (
    ModelConfig,
    ModelVersionStatus,
    dump_repository_config,
    parse_config_response,
    parse_error_response,
)

DEFAULT_CONFIG_FILE_PERMISSIONS = 0o644

log = logging.getLogger(__name__)

ConfigResponse = dict[str, list[ModelVersionStatus]]


class OvmsClientError(Exception):
    """Raised when the config API cannot be reached or answers with an error.

    ``http_status`` holds the HTTP status of the reply, when there was one.
    """

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


def _seconds(timeout: float | timedelta | None) -> float | None:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return timeout


class OvmsClient:
    """Client of the model server's ``/v1/config`` endpoints."""

    def __init__(self, address: str) -> None:
        self.address = address.rstrip("/")
        self.config_url = f"{self.address}/v1/config"
        self.reload_url = f"{self.address}/v1/config/reload"
        # no proxies: the model server runs next to the adapter
        self._opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    def _send(
        self,
        request: urllib.request.Request,
        timeout: float | timedelta | None,
        failure: str,
        read_failure: str,
    ) -> tuple[int, bytes]:
        seconds = _seconds(timeout)
        try:
            response = self._opener.open(request, timeout=seconds)
        except urllib.error.HTTPError as exc:
            try:
                body = exc.read()
            except OSError as read_exc:
                raise OvmsClientError(f"{read_failure}: {read_exc}", exc.code) from read_exc
            finally:
                exc.close()
            return exc.code, body
        except (urllib.error.URLError, OSError) as exc:
            raise OvmsClientError(f"{failure}: {exc}") from exc

        with response:
            try:
                body = response.read()
            except OSError as exc:
                raise OvmsClientError(f"{read_failure}: {exc}", response.status) from exc
            return response.status, body

    def get_config(self, timeout: float | timedelta | None = None) -> ConfigResponse:
        """Query the model statuses held by the server."""
        request = urllib.request.Request(self.config_url, method="GET")
        status, body = self._send(
            request,
            timeout,
            "Protocol error getting the config",
            "Error reading config status response body",
        )

        if status == 200:
            try:
                return parse_config_response(body)
            except ValueError as exc:
                msg = "Error parsing /config response"
                log.debug("%s: %s; body %r", msg, exc, body)
                raise OvmsClientError(f"{msg}: {exc}", status) from exc

        try:
            error = parse_error_response(body)
        except ValueError as exc:
            msg = "Error parsing /config error response"
            log.debug("%s: %s; body %r", msg, exc, body)
            raise OvmsClientError(f"{msg}: {exc}", status) from exc

        description = f"Error response when getting the config: {error}"
        log.error("Call to /v1/config returned an error (code %d): %s", status, description)
        raise OvmsClientError(description, status)

    def reload_config(self, timeout: float | timedelta | None = None) -> ConfigResponse:
        """Ask the server to reload its config file and return the model statuses.

        When the reload fails, the statuses are fetched with :meth:`get_config`
        so that the failing models can be told apart.
        """
        request = urllib.request.Request(self.reload_url, data=b"", method="POST")
        status, body = self._send(
            request,
            timeout,
            "Communication error reloading the config",
            "Error reading config reload response body",
        )

        if status in (200, 201):
            try:
                return parse_config_response(body)
            except ValueError as exc:
                msg = "Error parsing /config/reload response"
                log.debug("%s: %s; body %r", msg, exc, body)
                raise OvmsClientError(f"{msg}: {exc}", status) from exc

        try:
            error = parse_error_response(body)
        except ValueError as exc:
            msg = "Error parsing /config/reload error response"
            log.debug("%s: %s; body %r", msg, exc, body)
            raise OvmsClientError(f"{msg}: {exc}", status) from exc

        log.error(
            "Call to /v1/config/reload returned an error (code %d): "
            "Error response when reloading the config: %s",
            status,
            error,
        )
        return self.get_config(timeout)


def write_repository_config(
    path: str | os.PathLike[str],
    configs: Iterable[ModelConfig],
    permissions: int = DEFAULT_CONFIG_FILE_PERMISSIONS,
) -> None:
    """Write the multi-model config file, creating it with ``permissions``."""
    data = dump_repository_config(configs).encode("utf-8")
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, permissions)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
    except OSError as exc:
        raise OSError(f"Error writing config file: {exc}") from exc