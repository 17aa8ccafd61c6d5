"""Domain Documents (ApplicationDocument)

Uploaded files are stored elsewhere; a row here keeps only the opaque file
reference plus verification and version bookkeeping. Rows are never
overwritten: a re-upload creates the next version and flips
``is_latest_version`` on the previous one.
"""
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import models

from .domain_application import Application

__all__ = ['DocumentType', 'FileCategory', 'VerificationStatus', 'ApplicationDocument']


class DocumentType(models.TextChoices):
    REVENUE_PAPERS = 'revenue_papers', 'Revenue Papers (Jamabandi & Tatima)'
    AFFIDAVIT_SECTION_29 = 'affidavit_section_29', 'Affidavit under Section 29'
    UNDERTAKING_FORM_C = 'undertaking_form_c', 'Undertaking in Form-C'
    REGISTER_FOR_VERIFICATION = 'register_for_verification', 'Register for Verification'
    BILL_BOOK = 'bill_book', 'Bill Book'
    PROPERTY_PHOTO = 'property_photo', 'Property Photograph'


class FileCategory(models.TextChoices):
    PHOTO = 'photo', 'Photo'
    DOCUMENT = 'document', 'Document'


class VerificationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    VERIFIED = 'verified', 'Verified'
    REJECTED = 'rejected', 'Rejected'


class ApplicationDocument(models.Model):
    id = models.BigAutoField(primary_key=True)
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='documents', db_column='application_id')
    document_type = models.CharField(max_length=40, choices=DocumentType.choices, db_column='document_type')
    file_name = models.CharField(max_length=255, db_column='file_name')
    file_path = models.CharField(max_length=500, db_column='file_path')
    file_size = models.PositiveIntegerField(default=0, db_column='file_size')
    mime_type = models.CharField(max_length=100, blank=True, default='', db_column='mime_type')
    file_category = models.CharField(max_length=10, choices=FileCategory.choices, default=FileCategory.DOCUMENT, db_column='file_category')

    verification_status = models.CharField(max_length=10, choices=VerificationStatus.choices, default=VerificationStatus.PENDING, db_column='verification_status')
    verified_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='verified_by')
    verified_at = models.DateTimeField(null=True, blank=True, db_column='verified_at')
    verification_notes = models.TextField(blank=True, default='', db_column='verification_notes')

    version = models.PositiveIntegerField(default=1, db_column='version')
    previous_version = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='next_versions', db_column='previous_version_id')
    is_latest_version = models.BooleanField(default=True, db_column='is_latest_version')
    is_deleted = models.BooleanField(default=False, db_column='is_deleted')

    uploaded_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='uploaded_by')
    uploaded_at = models.DateTimeField(db_column='uploaded_at')

    class Meta:
        db_table = 'application_document'
        ordering = ['application_id', 'document_type', 'version']
        indexes = [
            models.Index(fields=['application', 'document_type'], name='idx_document_app_type'),
            models.Index(fields=['application', 'is_latest_version'], name='idx_document_latest'),
        ]

    def __str__(self):
        return f"{self.document_type} v{self.version} ({self.verification_status})"

    @property
    def counts_toward_requirements(self) -> bool:
        return bool(self.is_latest_version and not self.is_deleted)

    @staticmethod
    def category_for_mime(mime_type: str) -> str:
        if (mime_type or '').lower().startswith('image/'):
            return FileCategory.PHOTO
        return FileCategory.DOCUMENT

    def clean(self):
        if self.verification_status != VerificationStatus.PENDING and not self.verified_at:
            raise ValidationError({'verified_at': 'Required once a document has been verified or rejected.'})
        if self.verification_status == VerificationStatus.REJECTED and not (self.verification_notes or '').strip():
            raise ValidationError({'verification_notes': 'Notes are required when rejecting a document.'})

    def save(self, *args, **kwargs):
        self.file_category = self.category_for_mime(self.mime_type)
        super().save(*args, **kwargs)
