# src/http_builder/core/executor.py
"""
Execution engine: выполнение собранного запроса с retry.

Состояния::

    BUILT -> DISPATCHING -> SUCCEEDED
                         -> RETRYING -> DISPATCHING
                         -> EXHAUSTED

Любой HTTP ответ (в том числе 4xx/5xx) - SUCCEEDED. Ретраятся только
transport ошибки.
"""

import threading
import time
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .buffer_pool import BufferPool
from .config import DEFAULT_MAX_CONCURRENT, RetryConfig, TimeoutConfig
from .debug import DebugSink, NullDebugSink
from .exceptions import (
    ConfigurationError,
    HTTPBuilderException,
    RequestExecutionError,
    TransportError,
)
from .logging import NullLogger, clear_correlation_id, get_correlation_id, set_correlation_id
from .request import PreparedRequest
from .response import Response
from .retry_engine import RetryEngine
from .transport import Transport


class ExecutionState(str, Enum):
    """Состояние обмена."""
    BUILT = "built"
    DISPATCHING = "dispatching"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class ExecutionEngine:
    """
    Выполняет PreparedRequest через injected transport.

    Args:
        transport: Transport для сетевого обмена
        retry: RetryConfig по умолчанию
        timeout: TimeoutConfig по умолчанию
        logger: Логгер (no-op по умолчанию)
        debug_sink: Sink для request/response записей (no-op по умолчанию)
        buffer_pool: Пул буферов для staging body
        max_concurrent: Максимум одновременных обменов
        sleep: Функция ожидания между попытками (для тестов)

    Example:
        >>> engine = ExecutionEngine(RequestsTransport(), retry=RetryConfig(retry_count=3))
        >>> response = engine.execute(prepared)
    """

    def __init__(
        self,
        transport: Transport,
        *,
        retry: Optional[RetryConfig] = None,
        timeout: Optional[TimeoutConfig] = None,
        logger=None,
        debug_sink: Optional[DebugSink] = None,
        buffer_pool: Optional[BufferPool] = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        sleep: Callable[[float], None] = time.sleep
    ):
        if max_concurrent <= 0:
            raise ConfigurationError("max_concurrent must be positive")
        self.transport = transport
        self.retry = retry or RetryConfig()
        self.timeout = timeout or TimeoutConfig()
        self.logger = logger or NullLogger()
        self.debug_sink: DebugSink = debug_sink or NullDebugSink()
        self.buffer_pool = buffer_pool or BufferPool()
        self.max_concurrent = max_concurrent
        self._semaphore = threading.BoundedSemaphore(max_concurrent)
        self._sleep = sleep

    def execute(
        self,
        prepared: PreparedRequest,
        *,
        retry: Optional[RetryConfig] = None,
        timeout: Optional[TimeoutConfig] = None,
        result_transform: Optional[Callable[[str], str]] = None,
        json_unmarshal: Optional[Callable[[bytes], Any]] = None,
        xml_unmarshal: Optional[Callable[[bytes], Dict[str, Any]]] = None
    ) -> Response:
        """
        Выполнить запрос.

        Returns:
            Response (любой HTTP статус)

        Raises:
            RequestExecutionError: Все попытки упали на transport ошибках
            HTTPBuilderException: Transport вернул не-retryable ошибку
        """
        engine = RetryEngine(retry or self.retry)
        timeout = timeout or self.timeout

        own_correlation_id = get_correlation_id() is None
        if own_correlation_id:
            set_correlation_id(uuid.uuid4().hex[:16])

        try:
            with self._semaphore, self.buffer_pool.acquire() as buffer:
                payload: Optional[bytes] = None
                if prepared.body is not None:
                    buffer.write(prepared.body)
                    payload = buffer.getvalue()
                # transform и debug sink читают body: читаем внутри попытки,
                # чтобы обрыв чтения шёл по пути retry
                eager = result_transform is not None or bool(self.debug_sink)
                response = self._run(
                    prepared, payload, engine, timeout, json_unmarshal, xml_unmarshal, eager
                )
        finally:
            if own_correlation_id:
                clear_correlation_id()

        if result_transform is not None:
            response.apply_result_transform(result_transform)

        if self.debug_sink:
            self.debug_sink.on_response(self._response_record(response))

        return response

    def _run(
        self,
        prepared: PreparedRequest,
        payload: Optional[bytes],
        engine: RetryEngine,
        timeout: TimeoutConfig,
        json_unmarshal: Optional[Callable[[bytes], Any]],
        xml_unmarshal: Optional[Callable[[bytes], Dict[str, Any]]],
        eager: bool = False
    ) -> Response:
        state = ExecutionState.BUILT
        while True:
            state = ExecutionState.DISPATCHING
            attempt = engine.attempt + 1

            if self.debug_sink:
                self.debug_sink.on_request(prepared.debug_record())

            started = time.monotonic()
            try:
                raw = self.transport.send(
                    prepared.method,
                    prepared.url,
                    prepared.headers,
                    payload,
                    timeout.as_tuple(),
                )
                elapsed = time.monotonic() - started
                response = Response(
                    raw,
                    prepared,
                    elapsed=elapsed,
                    json_unmarshal=json_unmarshal,
                    xml_unmarshal=xml_unmarshal,
                    logger=self.logger,
                )
                if eager:
                    response.content
            except TransportError as e:
                self.logger.warning(
                    "Transport failure",
                    operation="execute",
                    http_method=prepared.method,
                    url=prepared.url,
                    attempt=attempt,
                    max_attempts=engine.max_attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                if engine.should_retry(e):
                    state = ExecutionState.RETRYING
                    wait = engine.get_wait_time()
                    self.logger.debug(
                        "Retrying request",
                        operation="execute",
                        state=state.value,
                        attempt=attempt,
                        wait_time=round(wait, 3),
                    )
                    self._sleep(wait)
                    engine.increment()
                    continue

                state = ExecutionState.EXHAUSTED
                self.logger.error(
                    "Request failed, retries exhausted",
                    operation="execute",
                    state=state.value,
                    http_method=prepared.method,
                    url=prepared.url,
                    attempts=attempt,
                )
                raise RequestExecutionError(attempt, e, prepared.url) from e
            except HTTPBuilderException as e:
                self.logger.error(
                    "Transport rejected request",
                    operation="execute",
                    http_method=prepared.method,
                    url=prepared.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            state = ExecutionState.SUCCEEDED
            self.logger.debug(
                "Request completed",
                operation="execute",
                state=state.value,
                http_method=prepared.method,
                url=prepared.url,
                status_code=raw.status_code,
                attempts=attempt,
                elapsed=round(elapsed, 3),
            )
            return response

    @staticmethod
    def _response_record(response: Response) -> Dict[str, Any]:
        """Запись для DebugSink.on_response (читает body)."""
        try:
            body = response.text
        except TransportError as e:
            body = f"<failed to read body: {e}>"
        return {
            "status_code": response.status_code,
            "status": response.status,
            "headers": dict(response.headers),
            "cookies": response.cookies,
            "body": body,
        }
