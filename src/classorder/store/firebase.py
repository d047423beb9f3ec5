"""Firebase Realtime Database connection over its REST API.

Reads and writes are plain HTTP calls on ``{base_url}/{path}.json``. Each
subscription holds open a ``text/event-stream`` request on its path in a
background thread. The stream reports changes relative to the subscribed
path; the listener turns each one back into a full snapshot of that path so
subscribers always see whole documents.
"""

import json
import threading

import httpx
import structlog

from classorder.exceptions import RemoteWriteError, StoreUnavailableError
from classorder.store.base import RemoteStore, Subscription, split_path

logger = structlog.get_logger(__name__)

_STREAM_TIMEOUT = httpx.Timeout(10.0, read=None)


class FirebaseStore(RemoteStore):
    def __init__(
        self,
        base_url: str,
        auth: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        probe_path: str = "settings",
        reconnect_delay: float = 2.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.probe_path = probe_path
        self.reconnect_delay = reconnect_delay
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._listeners: list[_StreamListener] = []
        self._lock = threading.Lock()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{'/'.join(split_path(path))}.json"

    def _params(self, **extra):
        params = dict(extra)
        if self.auth:
            params["auth"] = self.auth
        return params

    def connect(self) -> None:
        try:
            response = self._client.get(self.url_for(self.probe_path), params=self._params(shallow="true"))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("store_unreachable", url=self.base_url, error=str(exc))
            raise StoreUnavailableError(f"Cannot reach {self.base_url}: {exc}") from exc
        logger.info("store_connected", url=self.base_url)

    def get(self, path: str):
        try:
            response = self._client.get(self.url_for(path), params=self._params())
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"Cannot read {path}: {exc}") from exc
        return response.json()

    def set(self, path: str, value) -> None:
        try:
            response = self._client.put(self.url_for(path), params=self._params(), json=value)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteWriteError(path, str(exc)) from exc

    def remove(self, path: str) -> None:
        try:
            response = self._client.delete(self.url_for(path), params=self._params())
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteWriteError(path, str(exc)) from exc

    def subscribe(self, path: str, callback) -> Subscription:
        listener = _StreamListener(self, path, callback)
        with self._lock:
            self._listeners.append(listener)
        listener.start()
        return Subscription(path, lambda: self._stop_listener(listener))

    def close(self) -> None:
        with self._lock:
            listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener.stop()
        if self._owns_client:
            self._client.close()

    def _stop_listener(self, listener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
        listener.stop()


class _StreamListener:
    """Background reader for one streaming subscription."""

    def __init__(self, store: FirebaseStore, path: str, callback):
        self.store = store
        self.path = path
        self.callback = callback
        self._stopped = threading.Event()
        self._response = None
        self._thread = threading.Thread(target=self._run, name=f"store-stream:{path}", daemon=True)

    def start(self):
        self._thread.start()

    def stop(self):
        self._stopped.set()
        response = self._response
        if response is not None:
            response.close()

    def _run(self):
        while not self._stopped.is_set():
            try:
                self._listen()
            except (httpx.HTTPError, httpx.StreamError, ValueError) as exc:
                if self._stopped.is_set():
                    break
                logger.warning("store_stream_dropped", path=self.path, error=str(exc))
            if self._stopped.wait(self.store.reconnect_delay):
                break

    def _listen(self):
        with self.store._client.stream(
            "GET",
            self.store.url_for(self.path),
            params=self.store._params(),
            headers={"Accept": "text/event-stream"},
            timeout=_STREAM_TIMEOUT,
        ) as response:
            self._response = response
            response.raise_for_status()
            event = None
            for line in response.iter_lines():
                if self._stopped.is_set():
                    return
                if line.startswith("event:"):
                    event = line[len("event:") :].strip()
                elif line.startswith("data:"):
                    if not self._handle(event, line[len("data:") :].strip()):
                        self._stopped.set()
                        return
                    event = None
            self._response = None

    def _handle(self, event, data):
        """Act on one server-sent event. Returns False when the stream must end."""
        if event in ("put", "patch"):
            payload = json.loads(data) if data else {}
            if event == "put" and payload.get("path") == "/":
                self.callback(payload.get("data"))
            else:
                self.callback(self.store.get(self.path))
        elif event in ("cancel", "auth_revoked"):
            logger.error("store_stream_closed_by_server", path=self.path, event=event, detail=data)
            return False
        return True
