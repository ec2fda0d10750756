from sqlmodel import Column, Field, SQLModel, Text


class TreeNode(SQLModel, table=True):
    """
    One leaf of the shared trip tree.
    Objects are flattened into one row per leaf, addressed by slash-separated path.
    """

    __tablename__: str = "tree_node"

    path: str = Field(primary_key=True, max_length=1024)
    # JSON-encoded scalar or list
    value: str = Field(sa_column=Column(Text, nullable=False))
