"""Pydantic schemas for Asaas Sync.

This module provides the Asaas API payload models and charge status
classification.
"""

from .asaas_api import (
    AsaasAccount,
    AsaasCustomer,
    AsaasInstallment,
    AsaasModel,
    AsaasPage,
    AsaasPayment,
)
from .status import (
    InstallmentStanding,
    PaymentClass,
    classify_payment,
    summarize_installment,
)

__all__ = [
    # Asaas API
    "AsaasAccount",
    "AsaasCustomer",
    "AsaasInstallment",
    "AsaasModel",
    "AsaasPage",
    "AsaasPayment",
    # Status classification
    "InstallmentStanding",
    "PaymentClass",
    "classify_payment",
    "summarize_installment",
]
