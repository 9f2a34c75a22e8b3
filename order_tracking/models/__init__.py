from order_tracking.models.order import Order
from order_tracking.models.company_settings import CompanyTrackingSettings
