"""
A collection of tools for string formatting tasks.
"""

__all__ = ["indent", "deindent", "format_table"]


def indent(text, numtabs=1, spacespertab=4, tab=None):
    """
    Indents a given multiline string.

    Examples
    --------
    >>> multiline = '''def f(x):
    ...     return x*x'''
    >>> print(indent(multiline))
        def f(x):
            return x*x
    >>> print(indent(multiline, tab='####'))
    ####def f(x):
    ####    return x*x
    """
    if tab is None:
        tab = " " * spacespertab
    prefix = tab * numtabs
    return prefix + text.replace("\n", f"\n{prefix}")


def deindent(text, numtabs=None, spacespertab=4, docstring=False):
    """
    Returns a copy of the string with the common indentation removed.

    Note that all tab characters are replaced with ``spacespertab`` spaces.
    If the ``docstring`` flag is set, the first line is treated differently and
    is assumed to be already correctly tabulated.

    Examples
    --------
    >>> docstring = '''First docstring line.
    ...     This line determines the indentation.'''
    >>> print(deindent(docstring, docstring=True))
    First docstring line.
    This line determines the indentation.
    """
    text = text.replace("\t", " " * spacespertab)
    lines = text.split("\n")
    start = 1 if docstring else 0
    if docstring and len(lines) < 2:
        return text
    if numtabs is not None:
        indentlevel = numtabs * spacespertab
    else:
        lineseq = [
            len(line) - len(line.lstrip())
            for line in lines[start:]
            if len(line.strip())
        ]
        indentlevel = min(lineseq) if len(lineseq) else 0
    lines[start:] = [line[indentlevel:] for line in lines[start:]]
    return "\n".join(lines)


def format_table(header, rows, precision=4):
    """
    Format rows of values as a simple text table (used for log output).

    Examples
    --------
    >>> print(format_table(['site', 'peak'], [['axon node 0', 31.5]]))
    site         peak
    axon node 0  31.5
    """
    def _fmt(value):
        if isinstance(value, float):
            return f"{value:.{precision}g}"
        return str(value)

    cells = [[_fmt(v) for v in row] for row in [header] + list(rows)]
    widths = [max(len(row[col]) for row in cells) for col in range(len(header))]
    lines = [
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in cells
    ]
    return "\n".join(lines)
