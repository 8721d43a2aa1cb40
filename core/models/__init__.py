from .numbering import DocumentType, NumberingSequence
from .vat import TaxRate
