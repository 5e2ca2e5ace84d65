"""Advisory backends.

One class per transport, all exposing ``invoke(payload, timeout_seconds)``
and returning a :class:`BackendResult` instead of raising. The orchestrator
only ever sees that result, so a timeout, a crashed helper process and an
unreachable HTTP service are all handled by the same retry loop.
"""

from __future__ import annotations

import importlib
import json
import logging
import multiprocessing
import pickle
import shlex
import subprocess
from dataclasses import dataclass
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
from typing import Any, Callable, Protocol, Sequence

import httpx

from consys.core.config import AdvisoryConfig, BackendType, ConfigError

logger = logging.getLogger(__name__)

MODEL_REAP_SECONDS: float = 2.0


class BackendError(Exception):
    kind: str = "error"


class BackendTimeout(BackendError):
    kind = "timeout"


class BackendExitError(BackendError):
    kind = "exit_code"

    def __init__(self, exit_code: int, stderr: str = "") -> None:
        detail = stderr.strip().splitlines()[0] if stderr.strip() else "no output on stderr"
        super().__init__(f"backend exited with code {exit_code}: {detail}")
        self.exit_code = exit_code


class BackendTransportError(BackendError):
    kind = "transport"


class BackendDecodeError(BackendError):
    kind = "decode"


@dataclass(frozen=True, slots=True)
class BackendResult:
    response: dict[str, Any] | None = None
    error: BackendError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None


class AdvisoryBackend(Protocol):
    name: str

    def invoke(self, payload: dict[str, Any], timeout_seconds: float) -> BackendResult: ...


def decode_response(raw: str | bytes | None) -> BackendResult:
    if raw is None:
        return BackendResult()
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    # Model wrappers sometimes wrap their JSON in markdown fences.
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    if not text:
        return BackendResult()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return BackendResult(error=BackendDecodeError(f"invalid JSON from backend: {exc}"))
    return coerce_response(data)


def coerce_response(data: Any) -> BackendResult:
    if data is None:
        return BackendResult()
    if not isinstance(data, dict):
        return BackendResult(
            error=BackendDecodeError(f"backend returned {type(data).__name__}, expected an object")
        )
    return BackendResult(response=data)


class ExternalProcessBackend:
    name = BackendType.EXTERNAL_PROCESS.value

    def __init__(self, command: str | Sequence[str]) -> None:
        self.argv: list[str] = shlex.split(command) if isinstance(command, str) else list(command)
        if not self.argv:
            raise ConfigError("external_process backend needs a command")

    def invoke(self, payload: dict[str, Any], timeout_seconds: float) -> BackendResult:
        try:
            proc = subprocess.run(
                self.argv,
                input=json.dumps(payload, ensure_ascii=False),
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            return BackendResult(
                error=BackendTimeout(f"{self.argv[0]} did not answer within {timeout_seconds}s")
            )
        except OSError as exc:
            return BackendResult(error=BackendTransportError(f"cannot run {self.argv[0]}: {exc}"))

        if proc.returncode != 0:
            return BackendResult(error=BackendExitError(proc.returncode, proc.stderr or ""))
        return decode_response(proc.stdout)


class HttpApiBackend:
    name = BackendType.HTTP_API.value

    def __init__(self, endpoint: str, *, client: httpx.Client | None = None) -> None:
        if not endpoint:
            raise ConfigError("http_api backend needs an endpoint")
        self.endpoint = endpoint
        self._client = client

    def _post(self, payload: dict[str, Any], timeout_seconds: float) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.endpoint, json=payload, timeout=timeout_seconds)
        with httpx.Client(timeout=timeout_seconds) as client:
            return client.post(self.endpoint, json=payload)

    def invoke(self, payload: dict[str, Any], timeout_seconds: float) -> BackendResult:
        try:
            resp = self._post(payload, timeout_seconds)
            resp.raise_for_status()
        except httpx.TimeoutException:
            return BackendResult(
                error=BackendTimeout(f"{self.endpoint} did not answer within {timeout_seconds}s")
            )
        except httpx.HTTPStatusError as exc:
            return BackendResult(
                error=BackendTransportError(f"{self.endpoint} returned HTTP {exc.response.status_code}")
            )
        except httpx.HTTPError as exc:
            return BackendResult(error=BackendTransportError(f"{self.endpoint}: {exc}"))

        try:
            data = resp.json()
        except ValueError as exc:
            return BackendResult(error=BackendDecodeError(f"invalid JSON from {self.endpoint}: {exc}"))
        return coerce_response(data)


def _serve_model(
    handle: Callable[[dict[str, Any]], Any], payload: dict[str, Any], conn: Connection
) -> None:
    try:
        conn.send(("ok", handle(payload)))
    except Exception as exc:
        conn.send(("error", f"{type(exc).__name__}: {exc}"))
    finally:
        conn.close()


class LocalModelBackend:
    """Call an importable ``module:function`` model in a child process.

    Each attempt gets its own spawned process, which is terminated once the
    attempt ends, so a model that hangs past the timeout never outlives the
    attempt. The handle, the payload and its answer must be picklable.
    """

    name = BackendType.LOCAL_MODEL.value

    def __init__(self, handle: Callable[[dict[str, Any]], Any]) -> None:
        self.handle = handle

    def invoke(self, payload: dict[str, Any], timeout_seconds: float) -> BackendResult:
        ctx = multiprocessing.get_context("spawn")
        receiver, sender = ctx.Pipe(duplex=False)
        proc = ctx.Process(
            target=_serve_model,
            args=(self.handle, payload, sender),
            name="consys-model",
            daemon=True,
        )
        try:
            proc.start()
            sender.close()
            if not receiver.poll(timeout_seconds):
                return BackendResult(
                    error=BackendTimeout(f"local model did not answer within {timeout_seconds}s")
                )
            status, data = receiver.recv()
        except EOFError:
            return BackendResult(
                error=BackendTransportError("local model process exited without answering")
            )
        except (OSError, AttributeError, TypeError, pickle.PicklingError) as exc:
            return BackendResult(
                error=BackendTransportError(f"local model could not be started: {exc}")
            )
        finally:
            receiver.close()
            sender.close()
            _reap(proc)

        if status != "ok":
            return BackendResult(error=BackendTransportError(f"local model failed: {data}"))
        if isinstance(data, (str, bytes)):
            return decode_response(data)
        return coerce_response(data)


def _reap(proc: BaseProcess) -> None:
    if proc.pid is None:
        return
    if proc.is_alive():
        proc.terminate()
        proc.join(MODEL_REAP_SECONDS)
    if proc.is_alive():
        logger.warning("Local model process %s ignored SIGTERM; killing it", proc.pid)
        proc.kill()
    proc.join(MODEL_REAP_SECONDS)


def load_handle(path: str) -> Callable[[dict[str, Any]], Any]:
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"local model must be given as 'module:function', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"cannot import local model module {module_name!r}") from exc
    handle = getattr(module, attr, None)
    if not callable(handle):
        raise ConfigError(f"{path!r} is not a callable")
    return handle


def build_backend(config: AdvisoryConfig) -> AdvisoryBackend | None:
    """Select the backend implementation once, when the configuration is loaded.

    Returns ``None`` when no target is configured; every evaluation then goes
    straight to the heuristic fallback.
    """
    target = config.target
    if not target:
        logger.warning(
            "No target configured for advisory backend %s; using heuristic fallback only",
            config.backend_type.value,
        )
        return None

    if config.backend_type is BackendType.EXTERNAL_PROCESS:
        backend: AdvisoryBackend = ExternalProcessBackend(target)
    elif config.backend_type is BackendType.HTTP_API:
        backend = HttpApiBackend(target)
    else:
        backend = LocalModelBackend(load_handle(target))

    logger.info("Advisory backend=%s target=%s", backend.name, target)
    return backend


def try_backend(
    backend: AdvisoryBackend, payload: dict[str, Any], config: AdvisoryConfig
) -> BackendResult:
    try:
        return backend.invoke(payload, float(config.timeout_seconds))
    except Exception as exc:
        logger.exception("Advisory backend %s raised", getattr(backend, "name", backend))
        return BackendResult(error=BackendTransportError(str(exc) or type(exc).__name__))
