"""RPC endpoint probe for registered networks.

Checks that every RPC endpoint of a network answers and reports the chain
id the registry holds for it. Read-only: it never touches the registry.
"""

import logging
from dataclasses import dataclass, field

from web3 import Web3

from netreg.registry.models import Network

logger = logging.getLogger(__name__)


@dataclass
class EndpointStatus:
    """Probe outcome for a single RPC endpoint."""

    url: str
    reachable: bool
    chain_id: int | None = None
    error: str | None = None

    def matches(self, expected_chain_id: int) -> bool:
        return self.reachable and self.chain_id == expected_chain_id


@dataclass
class ProbeResult:
    """Probe outcome for every endpoint of a network."""

    network_id: str
    expected_chain_id: int
    endpoints: list[EndpointStatus] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        """True when every endpoint is reachable and serves the expected chain."""
        return bool(self.endpoints) and all(
            e.matches(self.expected_chain_id) for e in self.endpoints
        )

    def to_dict(self) -> dict:
        return {
            "network_id": self.network_id,
            "expected_chain_id": self.expected_chain_id,
            "healthy": self.healthy,
            "endpoints": {
                e.url: {
                    "reachable": e.reachable,
                    "chain_id": e.chain_id,
                    "matches": e.matches(self.expected_chain_id),
                    "error": e.error,
                }
                for e in self.endpoints
            },
        }


class RpcProbe:
    """Queries RPC endpoints for their chain id over HTTP.

    Parameters
    ----------
    timeout : float
        Per-request timeout in seconds.
    """

    def __init__(self, timeout: float = 5.0):
        self._timeout = timeout

    def check_endpoint(self, url: str) -> EndpointStatus:
        """Read the chain id served at ``url``.

        Parameters
        ----------
        url : str
            The RPC endpoint URL.

        Returns
        -------
        EndpointStatus
            Reachability and reported chain id.
        """
        if not url.startswith(("http://", "https://")):
            return EndpointStatus(url=url, reachable=False, error="only HTTP(S) endpoints are probed")

        w3 = Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": self._timeout}))
        try:
            chain_id = w3.eth.chain_id
        except Exception as e:
            logger.warning("RPC probe failed", extra={"url": url, "error": str(e)})
            return EndpointStatus(url=url, reachable=False, error=str(e))

        return EndpointStatus(url=url, reachable=True, chain_id=chain_id)

    def check(self, network: Network) -> ProbeResult:
        """Probe the primary and every alternative RPC endpoint of ``network``."""
        result = ProbeResult(network_id=network.id, expected_chain_id=network.chain_id)
        for url in [network.rpc_url, *network.other_rpc_urls]:
            result.endpoints.append(self.check_endpoint(url))

        logger.info(
            "RPC probe complete",
            extra={"network_id": network.id, "healthy": result.healthy},
        )
        return result
