"""Weekly routine builder: multi-routine timetables with teacher clash checks."""

__version__ = "0.1.0"
