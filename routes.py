"""API Routes for expenses"""
from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.responses import JSONResponse, Response
from typing import Annotated
from services import expenses_service
from services.expenses_service import ExpenseStore, ExpenseValidationError
from models.expense import ApiResponse
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET,POST,OPTIONS"

class ExpenseJSONResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"

def envelope(status_code: int, **fields) -> ExpenseJSONResponse:
    """Wraps a payload in the {success, data|error, details} envelope."""
    content = ApiResponse(**fields).model_dump(mode="json", exclude_none=True)
    return ExpenseJSONResponse(content=content, status_code=status_code)

# --- Dependency Function ---
def get_expense_store(request: Request) -> ExpenseStore:
    """Dependency to get the in-memory expense store from the request state."""
    store = getattr(request.state, "expense_store", None)
    if store is None:
        logger.error("Expense store not found in application state. Was the app started through its lifespan?")
        raise HTTPException(status_code=503, detail="Expense store not available.")
    return store

ExpenseStoreDep = Annotated[ExpenseStore, Depends(get_expense_store)]

# --- API Routes ---

# Methods other than GET, POST and OPTIONS (HEAD included: FastAPI does not add HEAD to
# GET routes) match the path only partially, so Starlette raises a 405 that main.py renders.

@router.options("/expenses", summary="CORS Preflight", status_code=204)
async def expenses_preflight() -> Response:
    """Answers CORS preflight requests. The CORS headers are added by middleware."""
    return Response(status_code=204, media_type=ExpenseJSONResponse.media_type)

@router.get("/expenses", summary="Get All Expenses", description="Retrieves all expense records held by this instance, in insertion order.")
async def get_expenses(store: ExpenseStoreDep) -> ExpenseJSONResponse:
    logger.info("GET /expenses endpoint called.")
    expenses = expenses_service.get_all_expenses(store)
    return envelope(200, success=True, data=[expense.model_dump(mode="json") for expense in expenses])

@router.post("/expenses", summary="Create Expense", status_code=201, description="Validates a JSON body {amount, description, category, date} and records it.")
async def create_expense(request: Request, store: ExpenseStoreDep) -> ExpenseJSONResponse:
    """
    Handles creation of a single expense from the raw request body.
    Validation failures become 400s; anything else (oversized body, client
    disconnect, unexpected errors) becomes a 500 with the error message as details.
    """
    logger.info("POST /expenses endpoint called.")
    try:
        expense = await expenses_service.create_expense(store, request.stream())
    except ExpenseValidationError as ve:
        logger.warning(f"Expense rejected: {ve}")
        raise HTTPException(status_code=400, detail=str(ve))
    except Exception as e:
        logger.exception(f"Unexpected error creating expense: {e}")
        raise HTTPException(status_code=500, detail={"error": "Server error", "details": str(e)})

    return envelope(201, success=True, data=expense.model_dump(mode="json"))
