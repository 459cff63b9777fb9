from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base


def create_db_engine(db_file: str | Path, *, echo: bool = False, timeout: float = 30.0) -> Engine:
    # The busy timeout makes concurrent settlements queue for the write lock instead of failing.
    return create_engine(
        f"sqlite:///{db_file}",
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": timeout},
    )


def init_db(
    echo: bool = False,
    *,
    db_file: str | Path = "waste_bank.db",
    reset: bool = False,
    timeout: float = 30.0,
) -> sessionmaker[Session]:
    path = Path(db_file)
    if reset and path.exists():
        path.unlink()
    path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(path, echo=echo, timeout=timeout)

    Base.metadata.create_all(engine)
    return sessionmaker(engine)
