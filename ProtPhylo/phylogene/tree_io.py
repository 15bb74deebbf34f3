"""
Tree writing (Newick format)
"""
from .tree_builder import TreeNode

_NEWICK_SPECIAL = set(" ()[]':;,")


def _quote(name: str) -> str:
    """Quote labels that contain Newick punctuation"""
    if any(c in _NEWICK_SPECIAL for c in name):
        return "'" + name.replace("'", "''") + "'"
    return name


def to_newick(node: TreeNode, include_branch_lengths: bool = True,
              include_support: bool = True) -> str:
    """
    Convert tree to Newick format string (without the trailing ';')

    Args:
        node: Root node of tree
        include_branch_lengths: Whether to include branch lengths
        include_support: Write bootstrap support as internal node labels

    Returns:
        str: Newick format string

    Example:
        >>> to_newick(tree.root)
        '((A:0.100000,B:0.200000)95:0.050000,C:0.300000)'
    """
    if node.is_leaf():
        label = _quote(node.name or "")
    else:
        children_str = ','.join(to_newick(child, include_branch_lengths, include_support)
                                for child in node.children)
        label = f"({children_str})"
        if include_support and node.support is not None:
            label += f"{node.support:.0f}"

    if include_branch_lengths and node.parent is not None:
        return f"{label}:{node.branch_length:.6f}"
    return label


def write_tree(tree, filename: str, include_branch_lengths: bool = True):
    """
    Write a Tree (or root TreeNode) to a Newick file

    Example:
        >>> write_tree(result.tree, 'output.nwk')
    """
    root = getattr(tree, "root", tree)
    newick_str = to_newick(root, include_branch_lengths)
    with open(filename, 'w') as f:
        f.write(newick_str + ';\n')
