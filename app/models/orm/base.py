from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

# Stable constraint names so indexes and uniques are identical across databases
NAMING_CONVENTION = {
    "ix": "idx_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class CustomBase:
    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        column_str = ", ".join(
            f"{c.name}={getattr(self, c.key)!r}" for c in self.__table__.columns
        )
        return f"{class_name}({column_str})"


Base = declarative_base(cls=CustomBase, metadata=MetaData(naming_convention=NAMING_CONVENTION))
