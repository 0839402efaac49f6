"""Startup wiring: configuration -> wallet -> tools -> model -> session."""

from __future__ import annotations

import logging

from onchain_shopper.config import ShopperConfig
from onchain_shopper.core.session import ShoppingSession
from onchain_shopper.errors import SetupError
from onchain_shopper.llm.generation import StepCallback
from onchain_shopper.llm.router import LLMRouter
from onchain_shopper.tools import build_plugins, get_on_chain_tools
from onchain_shopper.wallet import create_wallet

logger = logging.getLogger("onchain_shopper.bootstrap")


def build_session(
    config: ShopperConfig,
    on_step_finish: StepCallback | None = None,
) -> ShoppingSession:
    """Create a ready-to-use session or raise :class:`SetupError`.

    Every failure here is fatal for the CLI: the chat loop is never entered.
    """
    config.require_credentials()

    try:
        wallet = create_wallet(config.wallet)
        registry = get_on_chain_tools(wallet, build_plugins(config))
        provider = LLMRouter(config.llm).get_provider()
    except SetupError:
        raise
    except Exception as exc:
        raise SetupError(f"Failed to initialize tools: {exc}") from exc

    logger.info(
        f"Session ready: wallet {wallet.address} on {wallet.chain.name}, "
        f"tools={registry.list_names()}, model={provider.model}"
    )
    return ShoppingSession(
        provider=provider,
        registry=registry,
        system_prompt=config.policy.format_prompt(),
        max_steps=config.agent.max_steps,
        on_step_finish=on_step_finish,
    )
