"""Operation descriptors built from approved guard results."""

from weighted_amm.quote.builder import QuoteBuilder
from weighted_amm.quote.descriptor import OperationDescriptor, Param

__all__ = ["QuoteBuilder", "OperationDescriptor", "Param"]
