from relax_apps import api as _api
from relax_apps import bc as _bc
from relax_apps import bfs as _bfs
from relax_apps import cc as _cc
from relax_apps import sssp as _sssp
from relax_apps.api import *
from relax_apps.bc import *
from relax_apps.bfs import *
from relax_apps.cc import *
from relax_apps.sssp import *

__all__ = []
__all__ += _api.__all__
__all__ += _bc.__all__
__all__ += _bfs.__all__
__all__ += _cc.__all__
__all__ += _sssp.__all__
