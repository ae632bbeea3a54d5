################################################################################
# MEILI-KEEPER
#
# @file:        health_probe.py
# @module:      meili_keeper.cores.health_probe
# @description: Single-shot HTTP probe of the service /health endpoint.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""Health endpoint probe (one request, short timeout, no retry)."""

import httpx

from ..errors import ProbeError, ProbeTimeoutError
from ..helpers.constants import HEALTH_PROBE_TIMEOUT
from ..helpers.logging import get_logger
from ..types import HealthProbeResult

logger = get_logger(__name__)


class HealthProbe:
    """GET <url>; any 2xx answer within the timeout counts as healthy."""

    def __init__(self, timeout: float = HEALTH_PROBE_TIMEOUT):
        self.timeout = timeout

    def probe(self, url: str) -> None:
        """
        Probe once.

        Raises:
            ProbeTimeoutError: No answer within the timeout
            ProbeError: Connection failure or non-2xx status
        """
        try:
            response = httpx.get(url, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise ProbeTimeoutError(f"{url} did not answer within {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ProbeError(f"{url} unreachable: {e}") from e

        if not response.is_success:
            raise ProbeError(f"{url} answered HTTP {response.status_code}")

    def check(self, url: str) -> HealthProbeResult:
        """Probe once and map the outcome to HealthProbeResult."""
        try:
            self.probe(url)
        except ProbeError as e:
            logger.debug(f"Health probe failed: {e}")
            return HealthProbeResult.UNREACHABLE
        return HealthProbeResult.HEALTHY
