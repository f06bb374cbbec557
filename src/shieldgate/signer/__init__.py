"""Signer capability."""

from shieldgate.signer.local_signer import LocalSigner, Signer

__all__ = ["LocalSigner", "Signer"]
