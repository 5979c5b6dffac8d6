"""
MovieDB schema definitions

Any schema has a base name and any of the following extended names:
 * ``Creation`` to create a new instance of that schema
 * ``Update`` to replace an existing instance of that schema
 * ``Patch`` to modify an existing instance of that schema
 * ``V2`` for the representation used by version 2 of the API
For example, there are five classes to represent movies:
``Movie``, ``MovieV2``, ``MovieCreation``, ``MovieUpdate`` and ``MoviePatch``

The difference between an update and a patch is the fact that
a patch has optional fields only. Any field of the original model
that should not be affected by some proposed change can therefore
just be omitted with a patch.

This package also contains the ``config`` module, but it's not
exported by default, since it's currently only used internally.
"""

from .bases import *
from .errors import *
from .extra import *
