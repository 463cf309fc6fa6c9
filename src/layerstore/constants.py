"""Built-in type tags.

Actions, meta nodes and effects carrying these tags are interpreted by the
dispatch pipeline itself rather than by user reducers.
"""

_PREFIX = "@@layerstore/"

# Action types
HYDRATE = _PREFIX + "hydrate"
PARTIAL_HYDRATE = _PREFIX + "partialHydrate"
RECALCULATE = _PREFIX + "recalculate"

# Meta types
DELEGATE = _PREFIX + "delegate"
INHERIT = _PREFIX + "inherit"
SKIP_EFFECTS = _PREFIX + "skipEffects"
SKIP_REDUCERS = _PREFIX + "skipReducers"

# Effect types
DISPATCH = _PREFIX + "dispatch"

ACTION_TYPES = frozenset({HYDRATE, PARTIAL_HYDRATE, RECALCULATE})
META_TYPES = frozenset({DELEGATE, INHERIT, SKIP_EFFECTS, SKIP_REDUCERS})
EFFECT_TYPES = frozenset({DISPATCH})
