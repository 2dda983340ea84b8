"""
API schemas package.
"""

from .common import ApiResponse, ErrorResponse
from .patients import PatientSchema
from .visits import (
    AddPrescriptionItemRequest,
    AdvanceRequest,
    AvailableStepsSchema,
    BillSchema,
    CheckInRequest,
    ClinicalDataRequest,
    CompleteVitalsRequest,
    InsuranceSchema,
    LabOrderDraftSchema,
    LabOrderSchema,
    LabResultRequest,
    OrderLabTestRequest,
    PrescriptionItemSchema,
    PrescriptionLineSchema,
    QueueSchema,
    QueueStatsSchema,
    StageStatsSchema,
    VisitSchema,
    VisitTimingSchema,
    VitalsSchema,
)
