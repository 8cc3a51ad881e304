"""
Debug tracing infrastructure for railtrack.

This module provides data structures for capturing a trace of the
grammar-to-diagram pipeline. When debug mode is enabled, the generator
records a snapshot after every stage and one record per rendered production.

This is primarily useful for:
1. Seeing what each transformer pass changed
2. Understanding why a diagram wrapped where it did
3. Writing targeted tests against intermediate states

Usage:
    >>> generator = RailroadGenerator()
    >>> document = generator.generate("a ::= 'x' b\\nb ::= 'y'", debug=True)
    >>> trace = generator.get_trace()
    >>> print(trace.summary())
    >>> trace.dump_to_file("debug_trace.txt")

The trace captures:
- Pipeline stages (parse, resolve, transformer passes, layout, colors, render)
- Per-production diagram sizes, row counts and primitive counts
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ProductionRecord:
    """
    Summary of one rendered production diagram.

    Attributes:
        name: Production name
        width: Diagram width including padding
        height: Diagram height including padding
        rows: Number of rows of the top-level sequence (1 when not wrapped)
        primitives: Number of drawing primitives emitted
    """

    name: str
    width: float
    height: float
    rows: int
    primitives: int

    def __str__(self) -> str:
        return (
            f"{self.name}: {self.width:.0f}x{self.height:.0f}, "
            f"{self.rows} row(s), {self.primitives} primitives"
        )


@dataclass
class PipelineStage:
    """
    Snapshot of state at a pipeline stage.

    Attributes:
        name: Name of this pipeline stage
        data: Dictionary of relevant data at this stage
    """

    name: str
    data: Dict[str, Any]

    def __str__(self) -> str:
        lines = [f"=== Stage: {self.name} ==="]
        for key, value in self.data.items():
            # Truncate long values
            str_val = str(value)
            if len(str_val) > 100:
                str_val = str_val[:100] + "..."
            lines.append(f"  {key}: {str_val}")
        return "\n".join(lines)


@dataclass
class PipelineTrace:
    """
    Complete trace of a generate() call.

    Usage:
        >>> trace = generator.get_trace()
        >>> trace.get_stage("transform:factoring").data["changed"]
        ['expr']
        >>> [str(r) for r in trace.productions]

    Attributes:
        stages: List of pipeline stages with their data
        productions: One record per rendered production
        input_text: The original grammar text
    """

    stages: List[PipelineStage] = field(default_factory=list)
    productions: List[ProductionRecord] = field(default_factory=list)
    input_text: str = ""

    def add_stage(self, name: str, data: Dict[str, Any]) -> None:
        """
        Add a pipeline stage snapshot.

        Args:
            name: Name of the stage (e.g., "layout")
            data: Dictionary of relevant data at this stage
        """
        self.stages.append(PipelineStage(name, data.copy()))

    def add_production(
        self,
        name: str,
        width: float,
        height: float,
        rows: int,
        primitives: int,
    ) -> None:
        """Record the outcome of rendering one production."""
        self.productions.append(
            ProductionRecord(name, width, height, rows, primitives)
        )

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        """Get the first pipeline stage with the given name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def get_stages(self, prefix: str) -> List[PipelineStage]:
        """Get all stages whose name starts with prefix."""
        return [s for s in self.stages if s.name.startswith(prefix)]

    def get_production(self, name: str) -> Optional[ProductionRecord]:
        for record in self.productions:
            if record.name == name:
                return record
        return None

    def wrapped_productions(self) -> List[ProductionRecord]:
        """Productions whose top-level sequence was split into rows."""
        return [r for r in self.productions if r.rows > 1]

    def summary(self) -> str:
        """
        Generate a human-readable summary of the trace.

        Returns a string with:
        - Input text
        - Pipeline stages overview
        - Production statistics
        """
        lines = [
            "=" * 60,
            "PIPELINE TRACE SUMMARY",
            "=" * 60,
            "",
            f"Input: {repr(self.input_text[:100])}"
            f"{'...' if len(self.input_text) > 100 else ''}",
            "",
            f"Pipeline stages: {len(self.stages)}",
        ]

        for stage in self.stages:
            lines.append(f"  {stage.name}")

        lines.extend(
            [
                "",
                f"Productions rendered: {len(self.productions)}",
                f"Wrapped productions: {len(self.wrapped_productions())}",
                f"Total primitives: {sum(r.primitives for r in self.productions)}",
            ]
        )

        return "\n".join(lines)

    def dump(self) -> str:
        """
        Generate a complete human-readable dump of the trace.

        This includes all stages with their full data and one line per
        rendered production.
        """
        lines = [self.summary(), "", "=" * 60, "DETAILED TRACE", "=" * 60, ""]

        lines.append("PIPELINE STAGES:")
        lines.append("-" * 40)
        for stage in self.stages:
            lines.append(str(stage))
            lines.append("")

        lines.append("PRODUCTIONS:")
        lines.append("-" * 40)
        for record in self.productions:
            lines.append(str(record))

        return "\n".join(lines)

    def dump_to_file(self, filename: str) -> None:
        """Write the complete trace dump to a file."""
        with open(filename, "w", encoding="utf-8") as f:
            f.write(self.dump())
