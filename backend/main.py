"""
FastAPI backend service for M-PESA text parsing.
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import logging
from typing import Any, Dict, List

from mpesa_parser import parse_text, rows_to_transactions, summarize, Transaction
from mpesa_parser.core.templates import DEFAULT_TEMPLATE_ID, get_registry

app = FastAPI(title="M-PESA Statement Parser", version="1.0.0")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite and other dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class TextRequest(BaseModel):
    text: str = ""
    template: str = DEFAULT_TEMPLATE_ID


class RowsRequest(BaseModel):
    rows: List[Dict[str, Any]] = []
    template: str = DEFAULT_TEMPLATE_ID


class SummaryRequest(BaseModel):
    transactions: List[Transaction]


def _parsed_response(transactions: List[Transaction]) -> JSONResponse:
    if not transactions:
        raise HTTPException(status_code=400, detail="No transactions found in this input.")

    return JSONResponse(content={
        "status": "success",
        "transactions": [t.model_dump(mode="json") for t in transactions],
        "summary": summarize(transactions).model_dump(mode="json")
    })


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "M-PESA Statement Parser API", "status": "healthy"}


@app.post("/parse-text")
async def parse_text_endpoint(request: TextRequest):
    """
    Parse pasted messages or extracted statement text.

    Args:
        request: Text and optional template ID

    Returns:
        Parsed transactions with a summary
    """
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="No text.")

    try:
        transactions = parse_text(request.text, request.template)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error parsing text: {e}")
        raise HTTPException(status_code=500, detail="Parsing failed.")

    logger.info(f"Parsed text: {len(transactions)} transactions found")
    return _parsed_response(transactions)


@app.post("/parse-rows")
async def parse_rows_endpoint(request: RowsRequest):
    """Convert spreadsheet rows into transactions."""
    if not request.rows:
        raise HTTPException(status_code=400, detail="No rows.")

    try:
        transactions = rows_to_transactions(request.rows, request.template)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error converting rows: {e}")
        raise HTTPException(status_code=500, detail="Parsing failed.")

    return _parsed_response(transactions)


@app.post("/summary")
async def summary_endpoint(request: SummaryRequest):
    """Summarize already-parsed transactions."""
    return JSONResponse(content=summarize(request.transactions).model_dump(mode="json"))


@app.get("/templates")
async def list_templates():
    """List all available templates."""
    registry = get_registry()
    return JSONResponse(content={
        "success": True,
        "templates": [
            {
                "id": template_id,
                "provider": registry.get_template(template_id).provider,
                "currency": registry.get_template(template_id).currency
            }
            for template_id in registry.list_templates()
        ]
    })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
