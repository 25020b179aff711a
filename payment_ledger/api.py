"""
FastAPI REST API Module

Exposes the transfer recorder over HTTP: record a transfer, list the full
ledger, and query one participant's history.
"""

from typing import List, Optional
import threading
from fastapi import FastAPI, HTTPException, Depends, status
import uvicorn

from .errors import ValidationError, TransferError, StoreError
from .schemas import RecordTransferRequest, TransferRecordModel
from .system import PaymentSystem


_payment_system: Optional[PaymentSystem] = None
_payment_system_lock = threading.Lock()


def get_payment_system() -> PaymentSystem:
    """Dependency to get the process-wide payment system instance"""
    global _payment_system
    if _payment_system is None:
        # Handlers run in a threadpool; only one of them may build the system
        with _payment_system_lock:
            if _payment_system is None:
                _payment_system = PaymentSystem()
    return _payment_system


def create_app(system: Optional[PaymentSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Payment Ledger API",
        description="Append-only ledger of two-party transfers",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    if system is not None:
        app.dependency_overrides[get_payment_system] = lambda: system

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    @app.post("/payments", status_code=status.HTTP_201_CREATED, response_model=TransferRecordModel)
    def record_payment(
        request: RecordTransferRequest,
        system: PaymentSystem = Depends(get_payment_system)
    ):
        """Move value between two parties and record the transfer"""
        try:
            amount = request.to_amount()
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Amount is not an integer: {request.amount}")

        try:
            record = system.recorder.record(request.sender, request.recipient, amount)
        except ValidationError as e:
            raise HTTPException(
                status_code=400,
                detail={"error": e.kind.value, "message": str(e)}
            )
        except TransferError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except StoreError as e:
            raise HTTPException(
                status_code=500,
                detail=f"Transfer executed but could not be recorded: {e}"
            )

        return TransferRecordModel.from_record(record)

    @app.get("/payments", response_model=List[TransferRecordModel])
    def list_payments(system: PaymentSystem = Depends(get_payment_system)):
        """All recorded transfers in insertion order"""
        try:
            records = system.recorder.all_records()
        except StoreError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [TransferRecordModel.from_record(r) for r in records]

    @app.get("/payments/history/{participant}", response_model=List[TransferRecordModel])
    def participant_history(participant: str, system: PaymentSystem = Depends(get_payment_system)):
        """Transfers sent or received by one participant"""
        try:
            records = system.recorder.history(participant)
        except StoreError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [TransferRecordModel.from_record(r) for r in records]

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "payment_ledger.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
