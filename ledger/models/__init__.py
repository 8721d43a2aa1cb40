from .cash_control import CashControl
from .sales_journal import SalesJournal, SalesJournalLine
