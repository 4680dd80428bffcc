from .storage import KeyValueRecord
from .tables import Table, Session, FoodItem, TableStateError
from .catalog import MenuItem, Bundle, BundleItem, Activity, ClubSettings, DEFAULT_SETTINGS
from .finance import (
    CashPayment, CardPayment, UpiPayment, SplitPayment, Payment,
    BilledItem, SalesTransaction, DailySummary, DayClosureRecord,
)

__all__ = [
    'KeyValueRecord',
    'Table', 'Session', 'FoodItem', 'TableStateError',
    'MenuItem', 'Bundle', 'BundleItem', 'Activity', 'ClubSettings', 'DEFAULT_SETTINGS',
    'CashPayment', 'CardPayment', 'UpiPayment', 'SplitPayment', 'Payment',
    'BilledItem', 'SalesTransaction', 'DailySummary', 'DayClosureRecord',
]
