from relax_metrics import metrics as _metrics
from relax_metrics.metrics import *

__all__ = []
__all__ += _metrics.__all__
