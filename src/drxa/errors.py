"""Exception taxonomy for drxa.

Derivation errors are deterministic: retrying the same call changes nothing.
Adapter errors cover registry and lifecycle problems. Network errors raised
by HTTP clients inside adapters are not wrapped; they reach the caller as-is.
"""

from typing import Optional


class DrxaError(Exception):
    """Base class for all drxa errors."""

    pass


# ============================================================================
# Derivation
# ============================================================================

class DerivationError(DrxaError):
    """Raised when a key or address cannot be derived."""

    pass


class InvalidDeriveParamsError(DerivationError, ValueError):
    """Raised when derivation parameters are missing or malformed."""

    pass


class InvalidMasterSecretError(DerivationError, ValueError):
    """Raised when the master secret is empty or not bytes."""

    pass


class UnsupportedChainError(DerivationError):
    """Raised when no chain profile exists for a chain identifier."""

    def __init__(self, chain: str):
        super().__init__(f"Unsupported chain: {chain}")
        self.chain = chain


class AddressDerivationError(DerivationError):
    """Raised when a curve operation fails (invalid scalar, bad child key)."""

    pass


# ============================================================================
# Adapters
# ============================================================================

class AdapterError(DrxaError):
    """Base class for adapter and registry errors."""

    pass


class AdapterNotRegisteredError(AdapterError, LookupError):
    """Raised when no adapter is registered for a chain."""

    def __init__(self, chain: str):
        super().__init__(f"No adapter registered for chain: {chain}")
        self.chain = chain


class AdapterAlreadyRegisteredError(AdapterError):
    """Raised when registering a second adapter under the same chain name."""

    def __init__(self, chain: str):
        super().__init__(
            f"An adapter is already registered for chain: {chain} "
            f"(pass replace=True to overwrite)"
        )
        self.chain = chain


class AdapterShutdownError(AdapterError):
    """Raised when an operation is attempted on a shut-down adapter."""

    pass


class CapabilityNotSupportedError(AdapterError):
    """Raised when an optional operation is not supported by an adapter."""

    def __init__(self, chain: str, capability: str):
        super().__init__(f"Adapter for {chain} does not support {capability}")
        self.chain = chain
        self.capability = capability


class AdapterConfigurationError(AdapterError):
    """Raised when an adapter lacks a collaborator it needs for an operation."""

    pass


class InvalidAddressError(AdapterError, ValueError):
    """Raised when a destination address is malformed for its chain."""

    pass


class InvalidAmountError(AdapterError, ValueError):
    """Raised when a transfer amount is not a positive number."""

    pass


class RpcError(AdapterError):
    """Raised when a JSON-RPC endpoint answers with an error object."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message if code is None else f"[{code}] {message}")
        self.code = code
