"""Domain errors raised by extraction and the archive/storage collaborators."""

from __future__ import annotations


class FitEvidenceError(Exception):
    """Base class; carries a stable code and user-facing remediation text."""

    code = "fitevidence_error"
    remediation = ""

    def __init__(self, message: str | None = None):
        super().__init__(message or self.remediation or self.code)

    def to_payload(self) -> dict:
        return {"status": "error", "code": self.code, "message": str(self), "remediation": self.remediation}


class NoFitDataFound(FitEvidenceError):
    """The walk finished without a single candidate file."""

    code = "no_fit_data_found"
    remediation = (
        "Fitness data not found in the uploaded archive. Re-export and make sure "
        "the export includes the Fit data category."
    )


class NoValidDataFound(FitEvidenceError):
    """Candidate files existed but none yielded a decodable record."""

    code = "no_valid_data_found"
    remediation = (
        "No valid data found in the uploaded files. The export format may have "
        "changed; make sure the archive contains fitness data in JSON format."
    )


class CorruptArchive(FitEvidenceError):
    code = "corrupt_archive"
    remediation = "The archive could not be unpacked. Upload the original ZIP file from the export."


class ArchiveTooLarge(FitEvidenceError):
    code = "archive_too_large"
    remediation = "The archive exceeds the configured size or file-count limit. Export a smaller date range."


class ResultNotFound(FitEvidenceError):
    code = "result_not_found"
    remediation = "No stored result with this id; it may have expired. Ingest the archive again."
