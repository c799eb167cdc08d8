from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from debtledger.api.deps import get_receipt_extractor
from debtledger.core.auth import get_current_admin
from debtledger.core.errors import ReceiptExtractionError
from debtledger.schemas.receipt import ReceiptData
from debtledger.services.receipt_service import ReceiptExtractor

router = APIRouter(dependencies=[Depends(get_current_admin)])


@router.post("/extract", response_model=ReceiptData, response_model_by_alias=False)
async def extract_receipt(
    image: UploadFile = File(...),
    extractor: ReceiptExtractor = Depends(get_receipt_extractor)
):
    """Read itemized amounts off a receipt photo (fall back to manual entry on 502)"""
    image_data = await image.read()
    if not image_data:
        raise ReceiptExtractionError("Empty image upload")

    mime_type = image.content_type or "image/jpeg"
    return await run_in_threadpool(extractor.extract, image_data, mime_type)
