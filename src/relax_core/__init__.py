from relax_core import atomics as _atomics
from relax_core import compact as _compact
from relax_core import dtypes as _dtypes
from relax_core import errors as _errors
from relax_core import host as _host
from relax_core import modes as _modes
from relax_core.atomics import *
from relax_core.compact import *
from relax_core.dtypes import *
from relax_core.errors import *
from relax_core.host import *
from relax_core.modes import *

__all__ = []
__all__ += _atomics.__all__
__all__ += _compact.__all__
__all__ += _dtypes.__all__
__all__ += _errors.__all__
__all__ += _host.__all__
__all__ += _modes.__all__
