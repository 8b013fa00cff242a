"""Factor tables and the semiring they are combined under."""

from structflow.factors.factor import SUM_PRODUCT, Factor, SumProductSemiring

__all__ = ["Factor", "SumProductSemiring", "SUM_PRODUCT"]
