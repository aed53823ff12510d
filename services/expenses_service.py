"""Service layer for handling expense-related logic."""
import logging
import json
from typing import List, Dict, Any, AsyncIterator, Union
from models.expense import Expense
from utils.coercion import is_truthy, to_number, to_text
from utils.dates import parse_calendar_date

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1_000_000  # bytes
REQUIRED_FIELDS = ("amount", "description", "category", "date")

class ExpenseValidationError(ValueError):
    """Client-correctable problem with a create request (reported as 400)."""

class BodyTooLargeError(Exception):
    """Request body exceeded MAX_BODY_SIZE while being read."""

# --- In-memory store ---

class ExpenseStore:
    """
    Append-only, process-local collection of expenses.
    Each running process owns its own store: nothing is shared between workers
    and everything is lost on restart.
    """

    def __init__(self) -> None:
        self._expenses: List[Expense] = []

    def __len__(self) -> int:
        return len(self._expenses)

    def all(self) -> List[Expense]:
        """Returns the expenses in insertion order."""
        return list(self._expenses)

    def add(self, amount: Union[int, float], description: str, category: str, date) -> Expense:
        # No await between computing the id and appending, so ids stay sequential within a process.
        expense = Expense(
            id=len(self._expenses) + 1,
            amount=amount,
            description=description,
            category=category,
            date=date,
        )
        self._expenses.append(expense)
        return expense

# --- Body handling ---

async def read_body(chunks: AsyncIterator[bytes], limit: int = MAX_BODY_SIZE) -> bytes:
    """
    Accumulates a streamed request body.
    Stops reading and raises BodyTooLargeError as soon as more than `limit` bytes arrive.
    """
    body = bytearray()
    async for chunk in chunks:
        body.extend(chunk)
        if len(body) > limit:
            logger.warning(f"Request body exceeded {limit} bytes; aborting read.")
            raise BodyTooLargeError("Request body too large")
    return bytes(body)

def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON constant: {name}")

def parse_body(raw: bytes) -> Dict[str, Any]:
    """
    Decodes a JSON request body. An empty body is an empty object, and so is any
    JSON value that is not an object (it simply carries none of the fields).
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        logger.warning(f"Rejecting request with invalid JSON body: {e}")
        raise ExpenseValidationError("Invalid JSON body")
    return parsed if isinstance(parsed, dict) else {}

# --- Validation ---

def find_missing_fields(payload: Dict[str, Any]) -> List[str]:
    """Lists required fields that are absent, in REQUIRED_FIELDS order."""
    missing = []
    amount = payload.get("amount")
    if amount is None or amount == "":
        missing.append("amount")
    for field in REQUIRED_FIELDS[1:]:
        if not is_truthy(payload.get(field)):
            missing.append(field)
    return missing

def validate_expense_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Checks a decoded payload and returns the normalized expense fields.
    Order is fixed: missing fields, then amount, then date.
    """
    missing = find_missing_fields(payload)
    if missing:
        raise ExpenseValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        amount = to_number(payload["amount"])
    except ValueError:
        raise ExpenseValidationError("Invalid field: amount must be a number")

    try:
        expense_date = parse_calendar_date(payload["date"])
    except ValueError:
        raise ExpenseValidationError("Invalid field: date must be a valid date string (e.g. 2025-01-01)")

    return {
        "amount": amount,
        "description": to_text(payload["description"]),
        "category": to_text(payload["category"]),
        "date": expense_date,
    }

# --- Operations ---

def get_all_expenses(store: ExpenseStore) -> List[Expense]:
    """Fetches all expenses from the store, oldest first."""
    expenses = store.all()
    logger.info(f"Fetched {len(expenses)} expenses.")
    return expenses

async def create_expense(store: ExpenseStore, chunks: AsyncIterator[bytes]) -> Expense:
    """
    Reads, validates and stores one expense.
    Raises ExpenseValidationError for client errors; BodyTooLargeError and anything
    else propagate for the route to report as server errors.
    """
    raw = await read_body(chunks)
    payload = parse_body(raw)
    fields = validate_expense_payload(payload)
    expense = store.add(**fields)
    logger.info(f"Created expense #{expense.id}: {expense.amount} for '{expense.description[:20]}' ({expense.category}) on {expense.date}")
    return expense
