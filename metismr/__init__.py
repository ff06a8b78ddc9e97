"""In-process MapReduce engine with bucketed intermediate stores and sample applications."""

__version__ = "0.1.0"