from fastapi import Depends
from sqlalchemy.orm import Session
from typing import Annotated
from invoicer.database.database import get_db

# Synchronous database dependency, one session per request
db_dependency = Annotated[Session, Depends(get_db)]
