"""gradeconf: grade configuration resolver.

Turns a partial set of build options and platform capability facts into a
complete, consistent set of runtime configuration flags by applying an
ordered list of implication, conflict, default, reservation and retraction
rules in a single pass.
"""

__version__ = "0.1.0"
