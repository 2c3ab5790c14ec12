# ==============================================================================
# REPOSITORIO BASE - Archivos JSON de la caja
# ==============================================================================
# Cada repositorio es dueño de un archivo bajo la carpeta de datos.
# Toda modificación pasa por _mutate(): leer, cambiar y escribir con el
# lock tomado, y la escritura va a un .tmp que luego reemplaza al archivo.
# ==============================================================================

import json
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional


class BaseRepository(ABC):
    """
    Acceso a un archivo JSON.

    Un archivo ilegible se trata como vacío. Los errores de escritura
    (OSError) suben sin tocar; la capa de servicios los convierte en
    RemotePersistenceError.
    """

    # Compartido por todos los repositorios del proceso
    _lock = threading.RLock()

    def __init__(self, file_path: str):
        self.file_path = file_path
        os.makedirs(os.path.dirname(file_path) or '.', exist_ok=True)
        if not os.path.exists(file_path):
            self._dump(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """Contenido de un archivo recién creado."""

    def _valid(self, data: Any) -> bool:
        return isinstance(data, type(self._empty_data()))

    def _load(self) -> Any:
        with self._lock:
            try:
                with open(self.file_path, encoding='utf-8') as f:
                    data = json.load(f)
            except (FileNotFoundError, json.JSONDecodeError):
                return self._empty_data()
        return data if self._valid(data) else self._empty_data()

    def _dump(self, data: Any) -> None:
        tmp = f'{self.file_path}.tmp'
        with self._lock:
            try:
                with open(tmp, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp, self.file_path)
            except (OSError, TypeError, ValueError):
                if os.path.exists(tmp):
                    os.remove(tmp)
                raise

    @contextmanager
    def _mutate(self) -> Iterator[Any]:
        """
        Entrega los datos para modificarlos en el bloque y los guarda al salir.
        Si el bloque lanza una excepción no se escribe nada.
        """
        with self._lock:
            data = self._load()
            yield data
            self._dump(data)

    def get_all(self) -> Any:
        return self._load()

    def save_all(self, data: Any) -> None:
        self._dump(data)


class DictRepository(BaseRepository):
    """
    Registros indexados por id.

    products.json -> {"p1": {...}, "p2": {...}}
    """

    def _empty_data(self) -> Dict:
        return {}

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        return self._load().get(str(record_id))

    def update(self, record_id: Any, record_data: Dict[str, Any]) -> None:
        """Reemplaza (o crea) el registro completo."""
        with self._mutate() as data:
            data[str(record_id)] = record_data

    def patch(self, record_id: Any, fields: Dict[str, Any]) -> bool:
        """
        Cambia solo los campos dados de un registro.

        Returns:
            False si el registro no existe (y no se escribe nada)
        """
        with self._lock:
            data = self._load()
            record = data.get(str(record_id))
            if record is None:
                return False
            record.update(fields)
            self._dump(data)
        return True


class ListRepository(BaseRepository):
    """
    Registros en orden de llegada.

    sales.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        return []

    def append(self, record: Dict[str, Any]) -> None:
        with self._mutate() as data:
            data.append(record)

    def find_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        return next((r for r in self._load() if r.get(field) == value), None)

    def find_all_by(self, field: str, value: Any) -> List[Dict[str, Any]]:
        return [r for r in self._load() if r.get(field) == value]

    def remove_where(self, field: str, value: Any) -> int:
        """
        Returns:
            Cantidad de registros eliminados
        """
        with self._lock:
            data = self._load()
            kept = [r for r in data if r.get(field) != value]
            if len(kept) != len(data):
                self._dump(kept)
        return len(data) - len(kept)
