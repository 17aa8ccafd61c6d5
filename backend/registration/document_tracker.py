"""
Document Requirement Tracker

Pure helpers over an application's document rows:

- which document types are required and how many of each
- whether the current set is complete, itemized when it is not
- turning a client upload manifest into new (unsaved) document versions
- verification and soft-delete field updates

Only the latest, non-deleted version of a document counts toward the
requirements. Nothing here saves anything.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .domain_documents import ApplicationDocument, DocumentType, VerificationStatus
from .workflow_errors import MissingDocuments, RecordNotFound, ValidationFailed

logger = logging.getLogger(__name__)

__all__ = [
    'REQUIRED_DOCUMENTS', 'MIN_PROPERTY_PHOTOS', 'UploadPlan', 'current_documents', 'checklist',
    'missing_documents', 'check_completeness', 'parse_manifest', 'plan_uploads', 'verify',
    'plan_soft_delete',
]

MIN_PROPERTY_PHOTOS = 2

REQUIRED_DOCUMENTS: Dict[str, int] = {
    DocumentType.REVENUE_PAPERS: 1,
    DocumentType.AFFIDAVIT_SECTION_29: 1,
    DocumentType.UNDERTAKING_FORM_C: 1,
    DocumentType.REGISTER_FOR_VERIFICATION: 1,
    DocumentType.BILL_BOOK: 1,
    DocumentType.PROPERTY_PHOTO: MIN_PROPERTY_PHOTOS,
}


def current_documents(documents: Iterable[ApplicationDocument]) -> List[ApplicationDocument]:
    return [doc for doc in documents if doc.counts_toward_requirements]


def checklist(documents: Iterable[ApplicationDocument]) -> List[Dict[str, Any]]:
    """One row per required type: required / present / verified / rejected counts."""
    current = current_documents(documents)
    rows = []
    for doc_type, required in REQUIRED_DOCUMENTS.items():
        of_type = [d for d in current if d.document_type == doc_type]
        rows.append({
            'document_type': str(doc_type),
            'label': DocumentType(doc_type).label,
            'required': required,
            'present': len(of_type),
            'verified': sum(1 for d in of_type if d.verification_status == VerificationStatus.VERIFIED),
            'rejected': sum(1 for d in of_type if d.verification_status == VerificationStatus.REJECTED),
            'satisfied': len(of_type) >= required,
        })
    return rows


def missing_documents(documents: Iterable[ApplicationDocument]) -> List[Dict[str, Any]]:
    return [
        {'document_type': row['document_type'], 'label': row['label'],
         'required': row['required'], 'present': row['present']}
        for row in checklist(documents) if not row['satisfied']
    ]


def check_completeness(documents: Iterable[ApplicationDocument]) -> None:
    """Raise MissingDocuments naming every shortfall; return None when complete."""
    missing = missing_documents(documents)
    if missing:
        names = ', '.join(
            f"{m['label']} (minimum {m['required']})" if m['required'] > 1 else m['label']
            for m in missing
        )
        raise MissingDocuments(missing, message=f"Missing documents: {names}.")


def parse_manifest(manifest: Optional[Iterable[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Validate a client upload manifest.

    Each entry needs ``document_type``, ``file_name`` and ``file_path``;
    ``file_size``, ``mime_type`` and ``replaces`` (id of the document this
    upload supersedes) are optional. Errors are keyed ``documents[<index>]``.
    """
    entries, errors = [], {}
    for index, raw in enumerate(manifest or []):
        key = f"documents[{index}]"
        if not isinstance(raw, dict):
            errors[key] = 'Each manifest entry must be an object.'
            continue
        doc_type = raw.get('document_type')
        if doc_type not in DocumentType.values:
            errors[key] = f"Unknown document type '{doc_type}'."
            continue
        file_name = str(raw.get('file_name') or '').strip()
        file_path = str(raw.get('file_path') or '').strip()
        if not file_name or not file_path:
            errors[key] = 'file_name and file_path are required.'
            continue
        try:
            file_size = int(raw.get('file_size') or 0)
        except (TypeError, ValueError):
            errors[key] = 'file_size must be a whole number of bytes.'
            continue
        if file_size < 0:
            errors[key] = 'file_size cannot be negative.'
            continue
        replaces = raw.get('replaces')
        if replaces not in (None, ''):
            try:
                replaces = int(replaces)
            except (TypeError, ValueError):
                errors[key] = 'replaces must be a document id.'
                continue
        else:
            replaces = None
        entries.append({
            'document_type': doc_type,
            'file_name': file_name,
            'file_path': file_path,
            'file_size': file_size,
            'mime_type': str(raw.get('mime_type') or '').strip(),
            'replaces': replaces,
        })
    if errors:
        raise ValidationFailed(errors)
    return entries


@dataclass
class UploadPlan:
    new_documents: List[ApplicationDocument] = field(default_factory=list)
    superseded_ids: List[int] = field(default_factory=list)

    def resulting_documents(self, existing: Iterable[ApplicationDocument]) -> List[ApplicationDocument]:
        """Existing rows as they will look after the plan, plus the new ones."""
        superseded = set(self.superseded_ids)
        kept = [d for d in existing if d.id not in superseded]
        return kept + list(self.new_documents)


def plan_uploads(application, existing: Iterable[ApplicationDocument], manifest, uploaded_by_id, now) -> UploadPlan:
    """Turn a manifest into new document versions without touching existing rows.

    A file reference that is already on the application is skipped, so a
    retried submission does not duplicate uploads.
    """
    existing = list(existing)
    by_id = {d.id: d for d in existing}
    known_paths = {d.file_path for d in existing if not d.is_deleted}
    plan = UploadPlan()
    errors = {}

    for index, entry in enumerate(parse_manifest(manifest)):
        if entry['file_path'] in known_paths:
            logger.debug('Skipping already-recorded upload %s', entry['file_path'])
            continue
        version, previous_id = 1, None
        if entry['replaces'] is not None:
            previous = by_id.get(entry['replaces'])
            key = f"documents[{index}]"
            if previous is None or previous.is_deleted:
                errors[key] = f"Document {entry['replaces']} does not belong to this application."
                continue
            if not previous.is_latest_version or previous.id in plan.superseded_ids:
                errors[key] = f"Document {previous.id} has already been replaced."
                continue
            if previous.document_type != entry['document_type']:
                errors[key] = 'A replacement must have the same document type.'
                continue
            version, previous_id = previous.version + 1, previous.id
            plan.superseded_ids.append(previous.id)

        plan.new_documents.append(ApplicationDocument(
            application_id=application.id,
            document_type=entry['document_type'],
            file_name=entry['file_name'],
            file_path=entry['file_path'],
            file_size=entry['file_size'],
            mime_type=entry['mime_type'],
            file_category=ApplicationDocument.category_for_mime(entry['mime_type']),
            version=version,
            previous_version_id=previous_id,
            is_latest_version=True,
            uploaded_by_id=uploaded_by_id,
            uploaded_at=now,
        ))
        known_paths.add(entry['file_path'])

    if errors:
        raise ValidationFailed(errors)
    return plan


def verify(document: ApplicationDocument, verifier_id, outcome: str, notes: str, now) -> Dict[str, Any]:
    """Field updates for a verification decision on one document."""
    if outcome not in (VerificationStatus.VERIFIED, VerificationStatus.REJECTED):
        raise ValidationFailed({'outcome': "Must be 'verified' or 'rejected'."})
    if not document.counts_toward_requirements:
        raise ValidationFailed({'document': 'Only the current version of a document can be verified.'})
    notes = (notes or '').strip()
    if outcome == VerificationStatus.REJECTED and not notes:
        raise ValidationFailed({'notes': 'Notes are required when rejecting a document.'})
    return {
        'verification_status': outcome,
        'verified_by_id': verifier_id,
        'verified_at': now,
        'verification_notes': notes,
    }


def plan_soft_delete(document: ApplicationDocument) -> Dict[str, Any]:
    if document.is_deleted:
        raise RecordNotFound(f"Document {document.id} has already been deleted.")
    return {'is_deleted': True}
