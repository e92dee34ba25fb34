from fastapi import APIRouter, HTTPException, Request

from monexo.core.primitives import (
    KeysetsResponse,
    KeysResponse,
    MintInfoResponse,
    PostCheckStateRequest,
    PostCheckStateResponse,
    PostExchangeRequest,
    PostExchangeResponse,
    PostMeltOnchainRequest,
    PostMeltOnchainResponse,
    PostMeltQuoteOnchainRequest,
    PostMeltQuoteOnchainResponse,
    PostMintOnchainRequest,
    PostMintOnchainResponse,
    PostMintQuoteOnchainRequest,
    PostMintQuoteOnchainResponse,
    PostRestoreRequest,
    PostRestoreResponse,
    PostSwapRequest,
    PostSwapResponse,
)
from monexo.mint.mint import Mint

router = APIRouter(prefix="/v1", tags=["Mint"])

# Sync handlers: FastAPI runs them in its threadpool.


def get_mint(request: Request) -> Mint:
    """Retrieve the initialized Mint from app state."""
    mint = getattr(request.app.state, "mint", None)
    if not mint:
        raise HTTPException(status_code=500, detail="mint not initialized")
    return mint


# ------------------------------------------------------------------
# Discovery
# ------------------------------------------------------------------


@router.get("/info", response_model=MintInfoResponse, response_model_exclude_none=True)
def get_info(request: Request):
    return get_mint(request).get_info()


@router.get("/keys", response_model=KeysResponse)
def get_keys(request: Request):
    """Public keys of all active keysets."""
    return get_mint(request).get_keys()


@router.get("/keys/{keyset_id}", response_model=KeysResponse)
def get_keys_by_id(request: Request, keyset_id: str):
    return get_mint(request).get_keys(keyset_id)


@router.get("/keysets", response_model=KeysetsResponse)
def get_keysets(request: Request):
    return get_mint(request).get_keysets()


# ------------------------------------------------------------------
# Swap / exchange / state / restore
# ------------------------------------------------------------------


@router.post("/swap", response_model=PostSwapResponse, response_model_exclude_none=True)
def post_swap(request: Request, req: PostSwapRequest):
    """Swap proofs for new blind signatures of equal total value."""
    signatures = get_mint(request).swap(req.inputs, req.outputs)
    return PostSwapResponse(signatures=signatures)


@router.post("/exchange", response_model=PostExchangeResponse, response_model_exclude_none=True)
def post_exchange(request: Request, req: PostExchangeRequest):
    signatures = get_mint(request).exchange(req.amount, req.inputs, req.outputs)
    return PostExchangeResponse(signatures=signatures)


@router.post("/checkstate", response_model=PostCheckStateResponse, response_model_exclude_none=True)
def post_checkstate(request: Request, req: PostCheckStateRequest):
    return PostCheckStateResponse(states=get_mint(request).check_state(req.Ys))


@router.post("/restore", response_model=PostRestoreResponse, response_model_exclude_none=True)
def post_restore(request: Request, req: PostRestoreRequest):
    """Return previously issued signatures for the given outputs."""
    outputs, signatures = get_mint(request).restore(req.outputs)
    return PostRestoreResponse(outputs=outputs, signatures=signatures)


# ------------------------------------------------------------------
# Mint (on-chain)
# ------------------------------------------------------------------


@router.post("/mint/quote/onchain", response_model=PostMintQuoteOnchainResponse)
def post_mint_quote_onchain(request: Request, req: PostMintQuoteOnchainRequest):
    """
    Open a mint quote.

    Pay `amount + fee` referencing `reference`, poll the quote until it is
    PAID, then post outputs to /v1/mint/onchain.
    """
    quote = get_mint(request).create_mint_quote(req.amount)
    return PostMintQuoteOnchainResponse.from_quote(quote)


@router.get("/mint/quote/onchain/{quote_id}", response_model=PostMintQuoteOnchainResponse)
def get_mint_quote_onchain(request: Request, quote_id: str):
    quote = get_mint(request).get_mint_quote(quote_id)
    return PostMintQuoteOnchainResponse.from_quote(quote)


@router.post("/mint/onchain", response_model=PostMintOnchainResponse, response_model_exclude_none=True)
def post_mint_onchain(request: Request, req: PostMintOnchainRequest):
    signatures = get_mint(request).mint_tokens(req.quote, req.outputs)
    return PostMintOnchainResponse(signatures=signatures)


# ------------------------------------------------------------------
# Melt (on-chain)
# ------------------------------------------------------------------


@router.post("/melt/quote/onchain", response_model=list[PostMeltQuoteOnchainResponse])
def post_melt_quote_onchain(request: Request, req: PostMeltQuoteOnchainRequest):
    quotes = get_mint(request).create_melt_quote(req.amount, req.address)
    return [PostMeltQuoteOnchainResponse.from_quote(q) for q in quotes]


@router.get("/melt/quote/onchain/{quote_id}", response_model=PostMeltQuoteOnchainResponse)
def get_melt_quote_onchain(request: Request, quote_id: str):
    quote = get_mint(request).get_melt_quote(quote_id)
    return PostMeltQuoteOnchainResponse.from_quote(quote)


@router.post("/melt/onchain", response_model=PostMeltOnchainResponse)
def post_melt_onchain(request: Request, req: PostMeltOnchainRequest):
    """Redeem proofs against a melt quote; returns the payout transaction id."""
    quote = get_mint(request).melt(req.quote, req.inputs)
    return PostMeltOnchainResponse(state=quote.state, txid=quote.txid)
