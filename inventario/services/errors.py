# ==============================================================================
# ERRORES DE NEGOCIO
# ==============================================================================
# Toda regla de negocio que falla lanza una de estas excepciones.
# La mutación se aborta y el documento queda intacto.
# Las rutas las convierten en {"ok": false, "error": mensaje} + status HTTP.
# ==============================================================================


class ServiceError(Exception):
    """Error de negocio con código HTTP asociado."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(ServiceError):
    """El id solicitado no existe."""
    status_code = 404


class ValidationError(ServiceError):
    """Datos faltantes, mal formados o que violan una regla de negocio."""
    status_code = 400


class InvalidStateError(ServiceError):
    """La entidad no está en un estado que permita la operación."""
    status_code = 400
