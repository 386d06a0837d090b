from relax_enactor import config as _config
from relax_enactor import enactor as _enactor
from relax_enactor import frontier as _frontier
from relax_enactor import functors as _functors
from relax_enactor import operators as _operators
from relax_enactor import problem as _problem
from relax_enactor import protocols as _protocols
from relax_enactor.config import *
from relax_enactor.enactor import *
from relax_enactor.frontier import *
from relax_enactor.functors import *
from relax_enactor.operators import *
from relax_enactor.problem import *
from relax_enactor.protocols import *

__all__ = []
__all__ += _config.__all__
__all__ += _enactor.__all__
__all__ += _frontier.__all__
__all__ += _functors.__all__
__all__ += _operators.__all__
__all__ += _problem.__all__
__all__ += _protocols.__all__
