"""Construction of the service graph shared by the API and the CLI."""
import logging
from dataclasses import dataclass
from typing import Optional

from src.escrow.chain import ChainAdapter, DryRunChainAdapter, FacilitatorChainAdapter
from src.escrow.challenge import PaymentChallengeIssuer
from src.escrow.recipients import RecipientResolver
from src.escrow.service import CommitService
from src.escrow.state_machine import EscrowStateMachine
from src.escrow.sweeper import RefundSweeper
from src.escrow.tokens import TokenRegistry, load_token_registry
from src.escrow.verifier import AuthorizationVerifier
from src.reputation.engine import ReputationEngine
from src.reputation.price_guide import PriceGuide
from src.reputation.social import SocialService
from src.server.config import ChainConfig, ServerConfig
from src.state.database import DatabaseManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    db: DatabaseManager
    chain: ChainAdapter
    tokens: TokenRegistry
    resolver: RecipientResolver
    reputation: ReputationEngine
    price_guide: PriceGuide
    state_machine: EscrowStateMachine
    commit: CommitService
    social: SocialService
    sweeper: RefundSweeper


def build_chain_adapter(config: ChainConfig) -> ChainAdapter:
    if config.adapter == "dry-run":
        return DryRunChainAdapter()
    if config.adapter == "facilitator":
        return FacilitatorChainAdapter(
            base_url=config.facilitator_url,
            api_key=config.api_key,
            timeout=config.timeout,
        )
    raise ValueError(f"Unknown chain adapter: {config.adapter}")


def build_services(
    config: ServerConfig,
    chain_adapter: Optional[ChainAdapter] = None,
    db: Optional[DatabaseManager] = None,
) -> Services:
    """Wire every component from configuration.

    ``chain_adapter`` overrides the configured adapter.
    """
    db = db or DatabaseManager(config.db_path)
    chain = chain_adapter or build_chain_adapter(config.chain)
    tokens = load_token_registry(config.escrow.token_registry_path)
    resolver = RecipientResolver(config.escrow.platform_min_bid_usd)
    reputation = ReputationEngine()
    price_guide = PriceGuide(resolver)
    state_machine = EscrowStateMachine(db, chain, reputation, tokens)
    commit = CommitService(
        db=db,
        tokens=tokens,
        resolver=resolver,
        issuer=PaymentChallengeIssuer(
            config.escrow.nonce_secret.encode(),
            ttl_minutes=config.escrow.challenge_ttl_minutes,
        ),
        verifier=AuthorizationVerifier(
            chain, amount_tolerance_units=config.escrow.amount_tolerance_units,
        ),
        state_machine=state_machine,
        price_guide=price_guide,
    )
    sweeper = RefundSweeper(
        db, state_machine,
        interval_seconds=config.sweeper.interval_seconds,
        concurrency=config.sweeper.concurrency,
    )
    logger.info(
        "Services built: chain=%s tokens=%s",
        type(chain).__name__, ",".join(t.symbol for t in tokens.tokens),
    )
    return Services(
        db=db,
        chain=chain,
        tokens=tokens,
        resolver=resolver,
        reputation=reputation,
        price_guide=price_guide,
        state_machine=state_machine,
        commit=commit,
        social=SocialService(db, reputation),
        sweeper=sweeper,
    )
