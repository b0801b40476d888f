"""
Résumé inputs for a batch.

``schema`` holds the immutable ``ResumeInput``/``JobDescription``
values and request validation; ``load`` extracts text from résumé
files on disk.
"""

from .schema import JobDescription, ResumeInput, parse_batch_request  # noqa: F401
from .load import extract_text, load_resumes  # noqa: F401
