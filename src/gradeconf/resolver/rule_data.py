"""Declared rule list for the runtime configuration parameters.

Order matters: a rule may only read options that are part of the input or
were settled by earlier rules.  Derived-only options are reserved before
their first use, and ``DEFAULT_RULES.validate()`` must stay empty.

Option names drop the ``MR_`` prefix.  Platform facts use the toolchain or
probe spelling with underscores stripped (``__PIC__`` -> ``PIC``,
``_WIN32`` -> ``WIN32``, ``MR_HAVE_MPROTECT`` -> ``HAVE_MPROTECT``).
"""

from gradeconf.resolver.guards import (
    Defined,
    Fact,
    Truthy,
    Undefined,
    all_defined,
    any_defined,
)
from gradeconf.resolver.rules import (
    Conflict,
    Default,
    Implication,
    Requirement,
    Reservation,
    Rule,
    RuleSet,
    implies,
    retracts,
)

# Low-level debugging modes that only exist on the LLDS back end.
LOWLEVEL_ONLY_DEBUG_MODES = (
    "LOWLEVEL_DEBUG",
    "DEBUG_DD_BACK_END",
    "DEBUG_GOTOS",
    "DEBUG_LABEL_NAMES",
    "LOWLEVEL_ADDR_DEBUG",
    "DEBUG_LVAL_REP",
)

# Statistics gatherers that keep unsynchronised global counters.
THREAD_UNSAFE_STATS = (
    "TRACE_HISTOGRAM",
    "TYPE_CTOR_STATS",
    "TABLE_STATISTICS",
    "STACK_FRAME_STATS",
)

DEBUG_AGC_BUNDLE = (
    "DEBUG_AGC_SCHEDULING",
    "DEBUG_AGC_COLLECTION",
    "DEBUG_AGC_FORWARDING",
    "DEBUG_AGC_SAVED_HPS",
    "DEBUG_AGC_PRINT_VARS",
    "DEBUG_AGC_SMALL_HEAP",
)

DEEP_PROFILING_MEASUREMENTS = (
    "DEEP_PROFILING_PORT_COUNTS",
    "DEEP_PROFILING_TIMING",
    "DEEP_PROFILING_CALL_SEQ",
    "DEEP_PROFILING_MEMORY",
)

MINIMAL_MODEL_GRADES = (
    "USE_MINIMAL_MODEL_STACK_COPY",
    "USE_MINIMAL_MODEL_OWN_STACKS",
)

WIN32_BUNDLE = (
    "WIN32",
    "WIN32_GETSYSTEMINFO",
    "WIN32_VIRTUAL_ALLOC",
    "WIN32_GETPROCESSTIMES",
    "BROKEN_ST_INO",
)


def _tracing() -> tuple[Rule, ...]:
    return (
        Reservation("STACK_TRACE"),
        Implication(
            any_defined("EXEC_TRACE", "DEEP_PROFILING"),
            "STACK_TRACE",
            note="both tracing and deep profiling walk the stack",
        ),
    )


def _debug_agc() -> tuple[Rule, ...]:
    return implies(Truthy("DEBUG_AGC_ALL"), *DEBUG_AGC_BUNDLE)


def _highlevel_profiling() -> tuple[Rule, ...]:
    return tuple(
        Conflict(
            all_defined("HIGHLEVEL_CODE", other),
            note="not supported by the high-level C back end",
        )
        for other in ("DEEP_PROFILING", "RECORD_TERM_SIZES")
    )


def _minimal_model_prerequisites() -> tuple[Rule, ...]:
    # checked against the requested collector, before GC normalisation
    return tuple(
        Requirement(grade, "CONSERVATIVE_GC", note="tabling must keep heap cells alive")
        for grade in MINIMAL_MODEL_GRADES
    )


def _minimal_model_extras() -> tuple[Rule, ...]:
    return (
        Implication(
            Defined("USE_MINIMAL_MODEL_OWN_STACKS"),
            "EXEC_TRACE_INFO_IN_CONTEXT",
            note="own-stack tabling runs several contexts",
        ),
        Implication(Defined("MINIMAL_MODEL_DEBUG"), "TABLE_STATISTICS"),
    )


def _thread_safety() -> tuple[Rule, ...]:
    return tuple(
        Conflict(all_defined("THREAD_SAFE", stat)) for stat in THREAD_UNSAFE_STATS
    )


def _code_model() -> tuple[Rule, ...]:
    return (
        Implication(
            Defined("HIGHLEVEL_CODE"),
            "BOXED_FLOAT",
            1,
            note="the MLDS back end has no unboxed floats",
        ),
        Implication(Fact("PIC"), "PIC", 1),
        Implication(Defined("PIC"), "PIC_REG", 1),
        # DLLs do not use the GOT register, even when asked for it
        *retracts(Fact("CYGWIN") | Fact("WIN32"), "PIC_REG"),
        *implies(Defined("LOWLEVEL_DEBUG"), "DEBUG_GOTOS", "CHECK_FOR_OVERFLOW"),
    )


def _deep_profiling() -> tuple[Rule, ...]:
    port_counts, *timing_bundle = DEEP_PROFILING_MEASUREMENTS
    return (
        Implication(Defined("DEEP_PROFILING"), port_counts),
        *implies(
            Defined("DEEP_PROFILING") & Undefined("DEEP_PROFILING_PERF_TEST"),
            *timing_bundle,
        ),
        *retracts(Undefined("DEEP_PROFILING"), *DEEP_PROFILING_MEASUREMENTS),
    )


def _checks() -> tuple[Rule, ...]:
    return (Default("CHECK_DU_EQ", unless=Defined("DISABLE_CHECK_DU_EQ")),)


def _garbage_collection() -> tuple[Rule, ...]:
    return (
        Implication(any_defined("BOEHM_GC", "MPS_GC"), "CONSERVATIVE_GC"),
        Implication(
            Defined("CONSERVATIVE_GC") & Undefined("BOEHM_GC") & Undefined("MPS_GC"),
            "BOEHM_GC",
            note="Boehm is the default conservative collector",
        ),
    )


def _heap_reclamation() -> tuple[Rule, ...]:
    return (
        Implication(
            Undefined("CONSERVATIVE_GC") & Undefined("NATIVE_GC"),
            "MIGHT_RECLAIM_HP_ON_FAILURE",
        ),
        Implication(Defined("MIGHT_RECLAIM_HP_ON_FAILURE"), "RECLAIM_HP_ON_FAILURE"),
        Conflict(
            all_defined("RECLAIM_HP_ON_FAILURE", "CONSERVATIVE_GC"),
            note="conservative collectors cannot reset the heap",
        ),
        Conflict(
            all_defined("RECLAIM_HP_ON_FAILURE", "NATIVE_GC"),
            note="accurate GC lacks liveness accuracy",
        ),
        Conflict(
            Defined("RECLAIM_HP_ON_FAILURE") & Undefined("MIGHT_RECLAIM_HP_ON_FAILURE"),
            note="heap reclamation was requested in a grade that cannot support it",
        ),
    )


def _code_addresses() -> tuple[Rule, ...]:
    return (
        Reservation("STATIC_CODE_ADDRESSES"),
        Implication(
            Undefined("USE_GCC_NONLOCAL_GOTOS") | Defined("USE_ASM_LABELS"),
            "STATIC_CODE_ADDRESSES",
        ),
        Implication(
            Undefined("HIGHLEVEL_CODE") & Defined("THREAD_SAFE"),
            "LL_PARALLEL_CONJ",
        ),
        Implication(
            any_defined("DEEP_PROFILING_LOWLEVEL_DEBUG", "TABLE_DEBUG", "DEBUG_RETRY"),
            "DEBUG_LABEL_NAMES",
        ),
    )


def _highlevel_debugging() -> tuple[Rule, ...]:
    # one rule per pair so the diagnostic names exactly two flags
    return tuple(
        Conflict(all_defined("HIGHLEVEL_CODE", mode)) for mode in LOWLEVEL_ONLY_DEBUG_MODES
    )


def _label_tables() -> tuple[Rule, ...]:
    return (
        Reservation("INSERT_LABELS"),
        Implication(
            any_defined(
                "STACK_TRACE",
                "NATIVE_GC",
                "DEBUG_GOTOS",
                "BYTECODE_CALLABLE",
                "DEBUG_LABEL_NAMES",
            ),
            "INSERT_LABELS",
        ),
        Reservation("INSERT_ENTRY_LABEL_NAMES"),
        Implication(
            any_defined(
                "MPROF_PROFILE_CALLS",
                "DEBUG_GOTOS",
                "DEBUG_AGC_SCHEDULING",
                "DEBUG_LABEL_NAMES",
            ),
            "INSERT_ENTRY_LABEL_NAMES",
        ),
        Reservation("INSERT_INTERNAL_LABEL_NAMES"),
        Implication(
            any_defined("DEBUG_GOTOS", "DEBUG_AGC_SCHEDULING", "DEBUG_LABEL_NAMES"),
            "INSERT_INTERNAL_LABEL_NAMES",
        ),
        Implication(
            any_defined("NATIVE_GC", "DEBUG_GOTOS", "INSERT_ENTRY_LABEL_NAMES"),
            "NEED_ENTRY_LABEL_ARRAY",
        ),
        Implication(
            any_defined("NEED_ENTRY_LABEL_ARRAY", "MPROF_PROFILE_CALLS"),
            "NEED_ENTRY_LABEL_INFO",
        ),
    )


def _initialization() -> tuple[Rule, ...]:
    return (
        Reservation("NEED_INITIALIZATION_AT_START"),
        Implication(
            Undefined("STATIC_CODE_ADDRESSES")
            | any_defined("MPROF_PROFILE_CALLS", "MPROF_PROFILE_TIME", "DEBUG_LABEL_NAMES"),
            "NEED_INITIALIZATION_AT_START",
        ),
        Reservation("MAY_NEED_INITIALIZATION"),
        Implication(
            any_defined("NEED_INITIALIZATION_AT_START", "INSERT_LABELS"),
            "MAY_NEED_INITIALIZATION",
        ),
    )


def _platform() -> tuple[Rule, ...]:
    return (
        Implication(Fact("HAVE_SIGINFO") & Fact("PC_ACCESS"), "CAN_GET_PC_AT_SIGNAL"),
        Implication(
            (Fact("HAVE_MPROTECT") & Fact("HAVE_SIGINFO")) | Fact("WIN32"),
            "CHECK_OVERFLOW_VIA_MPROTECT",
        ),
        Implication(Fact("HAVE_MPROTECT") | Fact("WIN32"), "PROTECTPAGE"),
        Implication(Fact("MSC_VER"), "MSVC_STRUCTURED_EXCEPTIONS"),
        *implies(Fact("WIN32"), *WIN32_BUNDLE),
        Implication(Fact("APPLE") & Fact("MACH"), "MAC_OSX"),
    )


DEFAULT_RULES = RuleSet(
    (
        *_tracing(),
        *_debug_agc(),
        *_highlevel_profiling(),
        *_minimal_model_prerequisites(),
        # derives TABLE_STATISTICS, so it runs before the thread-safety conflicts
        *_minimal_model_extras(),
        *_thread_safety(),
        *_code_model(),
        *_deep_profiling(),
        *_checks(),
        *_garbage_collection(),
        *_heap_reclamation(),
        *_code_addresses(),
        # after DEBUG_GOTOS and DEBUG_LABEL_NAMES are derived
        *_highlevel_debugging(),
        *_label_tables(),
        *_initialization(),
        *_platform(),
    ),
    name="runtime",
)
