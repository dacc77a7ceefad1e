"""
Question Bank Service - user-owned question collections in Postgres.

Tables: question_banks (owner, name, visibility) and questions (FK to bank).
Owners can read and write their banks; public banks are readable by everyone.
Lookups that miss or hit someone else's private bank return None, which the
routes turn into 404.
"""

from typing import List, Optional

from sqlalchemy import text

from prepcoach.db.postgres import get_db_session, new_id, utcnow, to_json, from_json
from prepcoach.core.logging import get_logger

logger = get_logger(__name__)

QUESTION_COLUMNS = "id, question_bank_id, type, difficulty, question, follow_up, tags, time_limit, created_at, updated_at"


def _question_row(row) -> dict:
    q = dict(row)
    q["follow_up"] = from_json(q.get("follow_up"), [])
    q["tags"] = from_json(q.get("tags"), [])
    return q


class QuestionBankService:

    # ========================================================
    # Banks
    # ========================================================

    def list_banks(self, user_id: str, include_public: bool = False) -> List[dict]:
        where = "b.user_id = :uid OR b.is_public = TRUE" if include_public else "b.user_id = :uid"
        with get_db_session() as db:
            rows = db.execute(
                text(f"""
                    SELECT b.id, b.user_id, b.name, b.description, b.is_public,
                           b.created_at, b.updated_at, COUNT(q.id) AS question_count
                    FROM question_banks b
                    LEFT JOIN questions q ON q.question_bank_id = b.id
                    WHERE {where}
                    GROUP BY b.id, b.user_id, b.name, b.description, b.is_public, b.created_at, b.updated_at
                    ORDER BY b.updated_at DESC
                """),
                {"uid": user_id}
            ).mappings().fetchall()
        return [dict(r) for r in rows]

    def create_bank(self, user_id: str, name: str, description: Optional[str] = None,
                    is_public: bool = False) -> dict:
        now = utcnow()
        bank = {
            "id": new_id(), "user_id": user_id, "name": name.strip(), "description": description,
            "is_public": is_public, "created_at": now, "updated_at": now,
        }
        with get_db_session() as db:
            db.execute(
                text("""
                    INSERT INTO question_banks (id, user_id, name, description, is_public, created_at, updated_at)
                    VALUES (:id, :user_id, :name, :description, :is_public, :created_at, :updated_at)
                """),
                bank
            )
        logger.info(f"Created question bank {bank['id']} for user {user_id}")
        return {**bank, "question_count": 0}

    def _get_bank_row(self, db, bank_id: str, user_id: str, owner_only: bool) -> Optional[dict]:
        access = "user_id = :uid" if owner_only else "(user_id = :uid OR is_public = TRUE)"
        row = db.execute(
            text(f"""
                SELECT id, user_id, name, description, is_public, created_at, updated_at
                FROM question_banks WHERE id = :id AND {access}
            """),
            {"id": bank_id, "uid": user_id}
        ).mappings().fetchone()
        return dict(row) if row else None

    def get_bank(self, bank_id: str, user_id: str) -> Optional[dict]:
        """Bank with its questions; readable by the owner or anyone if public."""
        with get_db_session() as db:
            bank = self._get_bank_row(db, bank_id, user_id, owner_only=False)
            if not bank:
                return None
            rows = db.execute(
                text(f"SELECT {QUESTION_COLUMNS} FROM questions WHERE question_bank_id = :bid ORDER BY created_at"),
                {"bid": bank_id}
            ).mappings().fetchall()
        bank["questions"] = [_question_row(r) for r in rows]
        bank["question_count"] = len(bank["questions"])
        return bank

    def update_bank(self, bank_id: str, user_id: str, updates: dict) -> Optional[dict]:
        updates = {k: v for k, v in updates.items() if k in ("name", "description", "is_public")}
        with get_db_session() as db:
            if not self._get_bank_row(db, bank_id, user_id, owner_only=True):
                return None
            if updates:
                assignments = ", ".join(f"{k} = :{k}" for k in updates)
                db.execute(
                    text(f"UPDATE question_banks SET {assignments}, updated_at = :now WHERE id = :id"),
                    {**updates, "now": utcnow(), "id": bank_id}
                )
        return self.get_bank(bank_id, user_id)

    def delete_bank(self, bank_id: str, user_id: str) -> bool:
        with get_db_session() as db:
            if not self._get_bank_row(db, bank_id, user_id, owner_only=True):
                return False
            db.execute(text("DELETE FROM questions WHERE question_bank_id = :id"), {"id": bank_id})
            db.execute(text("DELETE FROM question_banks WHERE id = :id"), {"id": bank_id})
        logger.info(f"Deleted question bank {bank_id}")
        return True

    # ========================================================
    # Questions
    # ========================================================

    def add_questions(self, bank_id: str, user_id: str, questions: List[dict]) -> Optional[List[dict]]:
        """Insert questions into an owned bank. Returns the created rows, None if no access."""
        now = utcnow()
        created = []
        with get_db_session() as db:
            if not self._get_bank_row(db, bank_id, user_id, owner_only=True):
                return None
            for q in questions:
                row = {
                    "id": new_id(), "question_bank_id": bank_id,
                    "type": q["type"], "difficulty": q["difficulty"], "question": q["question"],
                    "follow_up": list(q.get("follow_up") or []), "tags": list(q.get("tags") or []),
                    "time_limit": q.get("time_limit") or 180,
                    "created_at": now, "updated_at": now,
                }
                db.execute(
                    text(f"""
                        INSERT INTO questions ({QUESTION_COLUMNS})
                        VALUES (:id, :question_bank_id, :type, :difficulty, :question, :follow_up_json,
                                :tags_json, :time_limit, :created_at, :updated_at)
                    """),
                    {
                        **{k: v for k, v in row.items() if k not in ("follow_up", "tags")},
                        "follow_up_json": to_json(row["follow_up"]),
                        "tags_json": to_json(row["tags"]),
                    }
                )
                created.append(row)
            db.execute(
                text("UPDATE question_banks SET updated_at = :now WHERE id = :id"),
                {"now": now, "id": bank_id}
            )
        return created

    def update_question(self, bank_id: str, question_id: str, user_id: str, updates: dict) -> Optional[dict]:
        updates = {k: v for k, v in updates.items() if v is not None}
        with get_db_session() as db:
            if not self._get_bank_row(db, bank_id, user_id, owner_only=True):
                return None
            params = {"id": question_id, "bid": bank_id, "now": utcnow()}
            assignments = []
            for key, value in updates.items():
                if key in ("follow_up", "tags"):
                    value = to_json(value)
                assignments.append(f"{key} = :{key}")
                params[key] = value
            assignments.append("updated_at = :now")
            result = db.execute(
                text(f"UPDATE questions SET {', '.join(assignments)} WHERE id = :id AND question_bank_id = :bid"),
                params
            )
            if result.rowcount == 0:
                return None
            row = db.execute(
                text(f"SELECT {QUESTION_COLUMNS} FROM questions WHERE id = :id"),
                {"id": question_id}
            ).mappings().fetchone()
        return _question_row(row)

    def delete_question(self, bank_id: str, question_id: str, user_id: str) -> bool:
        with get_db_session() as db:
            if not self._get_bank_row(db, bank_id, user_id, owner_only=True):
                return False
            result = db.execute(
                text("DELETE FROM questions WHERE id = :id AND question_bank_id = :bid"),
                {"id": question_id, "bid": bank_id}
            )
            return result.rowcount > 0

    def get_questions_for_sets(self, user_id: str, bank_ids: List[str]) -> List[dict]:
        """Session-ready questions from the given banks (owned or public)."""
        questions = []
        for bank_id in bank_ids:
            bank = self.get_bank(bank_id, user_id)
            if not bank:
                logger.warning(f"Question bank {bank_id} not accessible for user {user_id}")
                continue
            for q in bank["questions"]:
                questions.append({
                    "id": q["id"],
                    "type": q["type"],
                    "difficulty": q["difficulty"],
                    "question": q["question"],
                    "follow_up": q["follow_up"],
                    "time_limit": q["time_limit"],
                    "category": bank["name"],
                })
        return questions


# Singleton
_question_bank_service = None


def get_question_bank_service() -> QuestionBankService:
    global _question_bank_service
    if _question_bank_service is None:
        _question_bank_service = QuestionBankService()
    return _question_bank_service
