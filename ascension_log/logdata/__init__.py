"""Log data model: turns, intervals, countables and the log holder."""
