from relax_graph import csr as _csr
from relax_graph.csr import *

__all__ = []
__all__ += _csr.__all__
