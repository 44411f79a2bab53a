"""
Dependencias de autenticación para FastAPI.
"""
from typing import Annotated
from fastapi import Depends

from invoicer.modules.auth.models import User
from invoicer.modules.auth.utils import get_current_user

# Usuario autenticado: su id es el owner_id de todas las consultas
current_user_dependency = Annotated[User, Depends(get_current_user)]
