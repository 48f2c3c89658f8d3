from fastapi import Depends
from .settings import settings
from .db import SqliteOrderStore
from .providers.base import PaymentGateway
from .providers.sepay.adapter import SepayAdapter
from .reconciliation.status_mapper import WebhookReconciler

_order_store = SqliteOrderStore()
_gateway = SepayAdapter()


def get_order_store() -> SqliteOrderStore:
    return _order_store


def get_gateway() -> PaymentGateway:
    return _gateway


def get_reconciler(store: SqliteOrderStore = Depends(get_order_store)) -> WebhookReconciler:
    return WebhookReconciler(store, enforce_terminal_states=settings.ENFORCE_TERMINAL_STATES)
