"""Service layer: orders, status ledger, workflow automation, invoices, proposals, companies and notifications."""
from orderdesk.services.company_service import CompanyService
from orderdesk.services.invoice_service import InvoiceService
from orderdesk.services.notification_service import NotificationService
from orderdesk.services.order_service import OrderService
from orderdesk.services.proposal_service import ProposalService
from orderdesk.services.status_ledger import OrderStatusLedger
from orderdesk.services.workflow_service import WorkflowService

__all__ = [
    "OrderService",
    "OrderStatusLedger",
    "WorkflowService",
    "InvoiceService",
    "ProposalService",
    "CompanyService",
    "NotificationService",
]
