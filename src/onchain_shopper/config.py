"""Configuration system for Onchain Shopper.

Configuration comes from an optional ``shopper.yaml`` file layered over
built-in defaults.  String values may contain ``${VAR}`` placeholders which
are expanded from the environment, so the defaults alone pick up
``WALLET_PRIVATE_KEY``, ``CROSSMINT_API_KEY`` and friends.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

from onchain_shopper.errors import MissingCredentialError


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    :func:`is_unset` can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


def _deep_merge(base: dict, override: dict) -> dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def is_unset(value: Optional[str]) -> bool:
    """True for empty values and for placeholders whose variable is missing."""
    if not value or not value.strip():
        return True
    return bool(_ENV_VAR_RE.fullmatch(value.strip()))


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class LLMProviderConfig(BaseModel):
    """Configuration for a single LLM provider (OpenAI, Anthropic)."""

    api_key: str = ""
    model: str = ""
    base_url: Optional[str] = None  # For OpenAI-compatible endpoints
    max_tokens: int = 4096


class LLMConfig(BaseModel):
    """Which model answers the shopper, and how to reach it."""

    default_provider: str = "openai"
    openai: Optional[LLMProviderConfig] = Field(
        default_factory=lambda: LLMProviderConfig(
            api_key="${OPENAI_API_KEY}", model="gpt-4o-mini"
        )
    )
    anthropic: Optional[LLMProviderConfig] = Field(
        default_factory=lambda: LLMProviderConfig(
            api_key="${ANTHROPIC_API_KEY}", model="claude-sonnet-4-5-20250929"
        )
    )


class WalletConfig(BaseModel):
    """Blockchain wallet settings.

    ``private_key`` and ``rpc_url`` default to the environment variable of the
    selected backend; see :meth:`resolved`.
    """

    backend: Literal["evm", "solana"] = "evm"
    chain: Optional[str] = None  # defaults per backend: base / solana
    private_key: str = ""
    rpc_url: str = ""
    tokens: list[str] = Field(default_factory=lambda: ["USDC"])

    def resolved(self) -> "WalletConfig":
        """Fill in backend-specific defaults for empty fields."""
        from onchain_shopper.wallet.chains import DEFAULT_CHAINS

        if self.backend == "solana":
            key_var, rpc_var = "SOLANA_PRIVATE_KEY", "SOLANA_RPC_URL"
        else:
            key_var, rpc_var = "WALLET_PRIVATE_KEY", "RPC_PROVIDER_URL"
        return self.model_copy(
            update={
                "chain": self.chain or DEFAULT_CHAINS[self.backend],
                "private_key": os.environ.get(key_var, "") if is_unset(self.private_key) else self.private_key,
                "rpc_url": os.environ.get(rpc_var, "") if is_unset(self.rpc_url) else self.rpc_url,
            }
        )


class CheckoutConfig(BaseModel):
    """Headless checkout service credentials."""

    api_key: str = "${CROSSMINT_API_KEY}"
    environment: str = "${CROSSMINT_ENV}"
    base_url: Optional[str] = None

    @property
    def resolved_environment(self) -> str:
        return "production" if is_unset(self.environment) else self.environment.strip().lower()


class AgentConfig(BaseModel):
    """Limits for the tool-calling loop."""

    max_steps: int = 10


class PurchasePolicy(BaseModel):
    """Business rules the assistant is instructed to follow.

    The policy is only ever rendered into the system prompt; nothing in the
    chat loop parses or enforces it.
    """

    required_fields: list[str] = Field(
        default_factory=lambda: [
            "Name",
            "Shipping address",
            "Recipient email address",
            "Payment method",
            "Preferred chain",
        ]
    )
    payment_methods: list[str] = Field(default_factory=lambda: ["USDC", "SOL", "ETH"])
    chains: list[str] = Field(default_factory=lambda: ["EVM", "Solana", "Base"])
    locator_example: str = "amazon:B08SVZ775L"
    address_format: str = "Name, Street, City, State ZIP, Country"
    extra_instructions: str = ""

    def format_prompt(self) -> str:
        """Render the policy as system-prompt text."""
        fields = []
        for i, label in enumerate(self.required_fields, start=1):
            if label == "Payment method" and self.payment_methods:
                label = f"{label} ({', '.join(self.payment_methods)})"
            elif label == "Preferred chain" and self.chains:
                label = f"{label} ({', '.join(self.chains)})"
            fields.append(f"{i}) {label}")

        lines = [
            "No need to check the token balance of the user first.",
            "",
            "When fetching the wallet's balance, make sure to always convert the "
            "balance to the decimals and not base units.",
            "",
            "When buying a product:",
            "Always ask for ALL required information in the first response:",
            *fields,
            "",
            "Only proceed with the purchase when all information is provided.",
            f"1) Use productLocator format '{self.locator_example}'",
            "2) Extract product locator from URLs",
            f"3) Require and parse valid shipping address (in format "
            f"'{self.address_format}') and email",
            "4) The recipient WILL be the email provided by the user",
            "5) You can get the payer address using the get_wallet_address tool",
            "",
            "Once the order is executed via the buy_token tool, consider the purchase "
            "complete, and the payment sent. You can ask the user if they want to "
            "purchase something else.",
            "Don't ask to confirm payment to finalize orders.",
        ]
        if self.extra_instructions.strip():
            lines += ["", self.extra_instructions.strip()]
        return "\n".join(lines)


class ShopperConfig(BaseModel):
    """Root configuration object."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    checkout: CheckoutConfig = Field(default_factory=CheckoutConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    policy: PurchasePolicy = Field(default_factory=PurchasePolicy)

    def require_credentials(self) -> None:
        """Raise :class:`MissingCredentialError` if a required secret is absent."""
        missing: list[str] = []
        if is_unset(self.checkout.api_key):
            missing.append("CROSSMINT_API_KEY")
        wallet = self.wallet.resolved()
        if is_unset(wallet.private_key):
            missing.append(
                "SOLANA_PRIVATE_KEY" if wallet.backend == "solana" else "WALLET_PRIVATE_KEY"
            )
        if missing:
            raise MissingCredentialError(missing)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_NAME = "shopper.yaml"


def find_config(base: Path | None = None) -> Path | None:
    """Return ``./shopper.yaml`` if it exists, else ``None``."""
    path = (base or Path.cwd()) / DEFAULT_CONFIG_NAME
    return path if path.is_file() else None


def load_config(path: Path | None = None, overrides: dict | None = None) -> ShopperConfig:
    """Load and validate the configuration.

    The YAML file at *path* (if any) and then *overrides* are merged over the
    defaults.  Environment variable placeholders (``${VAR}``) are expanded
    before validation.
    """
    data: dict = ShopperConfig().model_dump(mode="python")
    if path is not None:
        raw_data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        data = _deep_merge(data, raw_data)
    if overrides:
        data = _deep_merge(data, overrides)
    expanded = _expand_env_recursive(data)
    return ShopperConfig.model_validate(expanded)


def save_config(config: ShopperConfig, path: Path) -> None:
    """Serialize a :class:`ShopperConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
