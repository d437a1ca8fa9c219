from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from ..deps import get_payment_agent
from ..models import AgentResponse, CommandRequest, SwapQuoteRequest
from ..services.agent import PaymentAgent

router = APIRouter(prefix="/api", tags=["Agent"])


def _error(status_code: int, message: str) -> JSONResponse:
    body = AgentResponse(success=False, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post("/command", response_model=AgentResponse, response_model_exclude_none=True)
async def process_command(
    request: CommandRequest,
    agent: PaymentAgent = Depends(get_payment_agent),
):
    """
    Interpret a natural-language payment command.

    Payment actions come back with an unsigned contract call for the caller's
    wallet to sign. Queries come back with balances, transactions or help text.
    """
    if not request.command.strip():
        return _error(400, "Command is required")

    try:
        return await agent.process_command(request.command, request.user_public_key)
    except Exception as e:
        logger.exception("Error processing command: {}", e)
        return _error(500, "Internal server error")


@router.get("/invoice/{invoice_id}", response_model=AgentResponse, response_model_exclude_none=True)
async def get_invoice_status(
    invoice_id: str,
    agent: PaymentAgent = Depends(get_payment_agent),
):
    """Get the status of an invoice created through a request command."""
    try:
        return await agent.get_invoice_status(invoice_id)
    except Exception as e:
        logger.exception("Error getting invoice status: {}", e)
        return _error(500, "Internal server error")


@router.post("/swap/quote", response_model=AgentResponse, response_model_exclude_none=True)
async def get_swap_quote(
    request: SwapQuoteRequest,
    agent: PaymentAgent = Depends(get_payment_agent),
):
    """Estimate the output of swapping one asset for another."""
    if not request.from_asset or not request.to_asset or not request.amount:
        return _error(400, "fromAsset, toAsset, and amount are required")

    try:
        return await agent.get_swap_quote(request.from_asset, request.to_asset, request.amount)
    except Exception as e:
        logger.exception("Error getting swap quote: {}", e)
        return _error(500, "Internal server error")
