"""Dependencias reutilizables para rutas de WhatsApp."""

from fastapi import Header, HTTPException, Request, status

from whatsappme.api.deps import get_settings
from whatsappme.core.security import verify_signature


async def verify_meta_signature(
    request: Request,
    x_hub_signature_256: str | None = Header(default=None),
) -> bytes:
    """Valida `x-hub-signature-256` contra el cuerpo bruto y lo retorna.

    La firma se calcula sobre los bytes exactos recibidos, antes de parsear.
    """
    settings = get_settings(request)
    body = await request.body()
    if not verify_signature(settings.app_secret or "", x_hub_signature_256, body):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    return body
