"""Festivus ingestion client.

Readings are POSTed as JSON to the Festivus insert endpoint. There is no
batching, authentication, or retry: a failed insert is reported and the
reading is dropped.
"""

from typing import Any, Dict, Optional, Protocol

import requests

from currentcost_bridge.shared.config import SinkConfig
from currentcost_bridge.shared.errors import SinkError


class PowerSink(Protocol):
    """Downstream consumer of power readings."""

    def insert(self, total: int, hot_water: int, solar: int) -> None:
        ...


class FestivusSink:
    """HTTP client for the Festivus power database.

    Args:
        config: Endpoint settings; ``timeout_s=None`` means the call may
            block indefinitely
        session: Optional preconfigured ``requests.Session``
    """

    def __init__(
        self,
        config: Optional[SinkConfig] = None,
        session: Optional[requests.Session] = None
    ) -> None:
        self.config = config or SinkConfig()
        self._session = session

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"Content-Type": "application/json"})
        return self._session

    def insert(self, total: int, hot_water: int, solar: int) -> None:
        """Insert one set of readings.

        Raises:
            SinkError: Connection failure or non-2xx response
        """
        payload: Dict[str, Any] = {
            "total": total,
            "hot_water": hot_water,
            "solar": solar,
        }
        try:
            response = self._get_session().post(
                self.config.insert_url,
                json=payload,
                timeout=self.config.timeout_s,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise SinkError(f"Festivus rejected insert: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise SinkError(f"Error connecting to Festivus: {e}") from e

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None
