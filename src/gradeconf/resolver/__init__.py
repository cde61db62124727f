from .engine import (
    check as check,
)
from .engine import (
    is_idempotent as is_idempotent,
)
from .engine import (
    resolve as resolve,
)
from .errors import (
    ConfigError as ConfigError,
)
from .errors import (
    IncompatibleCombination as IncompatibleCombination,
)
from .errors import (
    MissingPrerequisite as MissingPrerequisite,
)
from .errors import (
    ReservedFlagSetExternally as ReservedFlagSetExternally,
)
from .flags import (
    FlagStore as FlagStore,
)
from .flags import (
    FlagValue as FlagValue,
)
from .flags import (
    ResolvedConfiguration as ResolvedConfiguration,
)
from .flags import (
    TraceStep as TraceStep,
)
from .rule_data import (
    DEFAULT_RULES as DEFAULT_RULES,
)
from .rules import (
    RuleSet as RuleSet,
)
