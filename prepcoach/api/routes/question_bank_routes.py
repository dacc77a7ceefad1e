"""
Question Bank Routes

GET /question-banks - List my banks (optionally include public banks)
POST /question-banks - Create bank
GET /question-banks/{id} - Get bank with questions (owner, or anyone if public)
PUT /question-banks/{id} - Update bank
DELETE /question-banks/{id} - Delete bank and its questions
POST /question-banks/{id}/questions - Add one question
POST /question-banks/{id}/questions/bulk - Add many questions
POST /question-banks/{id}/import - Import questions from CSV/JSON/TXT/PDF/DOCX
PUT /question-banks/{id}/questions/{qid} - Update question
DELETE /question-banks/{id}/questions/{qid} - Delete question
"""

from fastapi import APIRouter, HTTPException, Depends, Query, Response, UploadFile, File

from prepcoach.core.auth import get_current_user
from prepcoach.services.question_bank_service import get_question_bank_service
from prepcoach.utils.file_upload import extract_questions_from_upload
from prepcoach.schemas.schemas import (
    QuestionBankCreate, QuestionBankUpdate, QuestionBankResponse, QuestionBankDetail,
    QuestionBankListResponse, QuestionIn, QuestionUpdate, QuestionResponse,
    BulkQuestionsRequest, QuestionImportResponse
)

router = APIRouter(prefix="/question-banks", tags=["Question Banks"])

BANK_NOT_FOUND = "Question bank not found"


@router.get("", response_model=QuestionBankListResponse)
async def list_banks(
    include_public: bool = Query(False),
    user: dict = Depends(get_current_user)
):
    banks = get_question_bank_service().list_banks(user["user_id"], include_public=include_public)
    return QuestionBankListResponse(data=banks, count=len(banks))


@router.post("", response_model=QuestionBankResponse, status_code=201)
async def create_bank(request: QuestionBankCreate, user: dict = Depends(get_current_user)):
    return get_question_bank_service().create_bank(
        user["user_id"], request.name, request.description, request.is_public
    )


@router.get("/{bank_id}", response_model=QuestionBankDetail)
async def get_bank(bank_id: str, user: dict = Depends(get_current_user)):
    bank = get_question_bank_service().get_bank(bank_id, user["user_id"])
    if not bank:
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)
    return bank


@router.put("/{bank_id}", response_model=QuestionBankDetail)
async def update_bank(bank_id: str, request: QuestionBankUpdate, user: dict = Depends(get_current_user)):
    bank = get_question_bank_service().update_bank(
        bank_id, user["user_id"], request.model_dump(exclude_unset=True)
    )
    if not bank:
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)
    return bank


@router.delete("/{bank_id}", status_code=204)
async def delete_bank(bank_id: str, user: dict = Depends(get_current_user)):
    if not get_question_bank_service().delete_bank(bank_id, user["user_id"]):
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)
    return Response(status_code=204)


@router.post("/{bank_id}/questions", response_model=QuestionResponse, status_code=201)
async def add_question(bank_id: str, request: QuestionIn, user: dict = Depends(get_current_user)):
    created = get_question_bank_service().add_questions(
        bank_id, user["user_id"], [request.model_dump(mode="json")]
    )
    if created is None:
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)
    return created[0]


@router.post("/{bank_id}/questions/bulk", response_model=QuestionImportResponse, status_code=201)
async def add_questions_bulk(bank_id: str, request: BulkQuestionsRequest, user: dict = Depends(get_current_user)):
    created = get_question_bank_service().add_questions(
        bank_id, user["user_id"], [q.model_dump(mode="json") for q in request.questions]
    )
    if created is None:
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)
    return QuestionImportResponse(imported_count=len(created), skipped_count=0, questions=created)


@router.post("/{bank_id}/import", response_model=QuestionImportResponse, status_code=201)
async def import_questions(bank_id: str, file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    """
    Import questions from an uploaded file.

    CSV needs a `question` column; type/difficulty/follow_up/tags/time_limit are
    optional. TXT, PDF and DOCX files hold one question per line.
    """
    service = get_question_bank_service()
    if not service.get_bank(bank_id, user["user_id"]):
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)

    questions, skipped = await extract_questions_from_upload(file)
    created = service.add_questions(bank_id, user["user_id"], questions)
    if created is None:
        raise HTTPException(status_code=404, detail=BANK_NOT_FOUND)

    return QuestionImportResponse(imported_count=len(created), skipped_count=skipped, questions=created)


@router.put("/{bank_id}/questions/{question_id}", response_model=QuestionResponse)
async def update_question(bank_id: str, question_id: str, request: QuestionUpdate,
                          user: dict = Depends(get_current_user)):
    updates = request.model_dump(mode="json", exclude_unset=True)
    if "question" in updates and updates["question"]:
        updates["question"] = updates["question"].strip()
    question = get_question_bank_service().update_question(bank_id, question_id, user["user_id"], updates)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.delete("/{bank_id}/questions/{question_id}", status_code=204)
async def delete_question(bank_id: str, question_id: str, user: dict = Depends(get_current_user)):
    if not get_question_bank_service().delete_question(bank_id, question_id, user["user_id"]):
        raise HTTPException(status_code=404, detail="Question not found")
    return Response(status_code=204)
