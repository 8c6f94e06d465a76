"""ens_pinner - keeps ENS content-hash targets pinned across IPFS nodes."""

__version__ = "0.1.0"
