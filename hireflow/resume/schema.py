"""
Batch input values.

A batch is one job description scored against many résumés.  Both are
immutable once created: the analyzer shares the job description
read-only between workers and never rewrites a résumé.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from ..errors import ValidationError


def fingerprint(file_name: str, text: str) -> str:
    """Stable short id for a résumé: sha256(file name + text)."""
    digest = hashlib.sha256(f"{file_name}\x00{text}".encode("utf-8")).hexdigest()
    return digest[:16]


@dataclass(frozen=True)
class ResumeInput:
    id: str
    file_name: str
    raw_text: str

    @classmethod
    def create(cls, file_name: str, raw_text: str, resume_id: Optional[str] = None) -> "ResumeInput":
        return cls(id=resume_id or fingerprint(file_name, raw_text), file_name=file_name, raw_text=raw_text)

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "ResumeInput":
        """Build from the wire form ``{"fileName": ..., "text": ...}``."""
        file_name = payload.get("fileName")
        text = payload.get("text")
        if not isinstance(file_name, str) or not file_name.strip():
            raise ValidationError("Invalid resume format: missing fileName")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError(f"Invalid resume format: missing text for {file_name}")
        resume_id = payload.get("id")
        return cls.create(file_name, text, str(resume_id) if resume_id else None)

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "fileName": self.file_name, "text": self.raw_text}


@dataclass(frozen=True)
class JobDescription:
    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValidationError("Job description is required")


def parse_batch_request(payload: Mapping[str, object]) -> Tuple[JobDescription, List[ResumeInput]]:
    """Validate a batch request body.

    Args:
        payload: ``{"resumes": [{"fileName", "text"}], "jobDescription": str}``

    Returns:
        The job description and the résumé inputs in submission order.

    Raises:
        ValidationError: If the résumé list is missing/empty, an entry is
            malformed or the job description is empty.
    """
    resumes = payload.get("resumes")
    if not isinstance(resumes, list) or not resumes:
        raise ValidationError("Resumes array is required and cannot be empty")
    job_text = payload.get("jobDescription")
    if not isinstance(job_text, str):
        raise ValidationError("Job description is required")
    job = JobDescription(job_text)
    inputs = []
    for entry in resumes:
        if not isinstance(entry, Mapping):
            raise ValidationError("Invalid resume format: expected an object")
        inputs.append(ResumeInput.from_payload(entry))
    return job, inputs
