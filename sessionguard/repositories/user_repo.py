"""Acceso a la colección `user` (entidad externa: solo versión de token y ubicaciones conocidas)."""
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo.database import Database

from sessionguard.core.time import Clock, utcnow

USER_COLL = "user"


class UserRepository:
    def __init__(self, db: Database, clock: Clock = utcnow) -> None:
        self.coll = db[USER_COLL]
        self.clock = clock

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene usuario por id (str); None si el id no es válido o no existe."""
        if not ObjectId.is_valid(user_id):
            return None
        return self.coll.find_one({"_id": ObjectId(user_id)})

    def increment_token_version(self, user_id: str) -> None:
        """Incrementa token_version (invalida todos los tokens emitidos al instante)."""
        self.coll.update_one(
            {"_id": ObjectId(user_id)},
            {"$inc": {"token_version": 1}, "$set": {"updated_at": self.clock()}},
        )

    def add_known_locations(
        self,
        user_id: str,
        *,
        country: Optional[str],
        ip_address: Optional[str],
        last_login: Optional[datetime],
    ) -> None:
        """Agrega país/IP a los conjuntos conocidos ($addToSet) y sella last_login."""
        update: Dict[str, Any] = {}
        add: Dict[str, Any] = {}
        if country:
            add["known_countries"] = country
        if ip_address:
            add["known_ips"] = ip_address
        if add:
            update["$addToSet"] = add
        if last_login is not None:
            update["$set"] = {"last_login": last_login}
        if update:
            self.coll.update_one({"_id": ObjectId(user_id)}, update)
