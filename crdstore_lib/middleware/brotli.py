import brotli
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

COMPRESSIBLE_TYPES = ('application/json', 'text/')


#############################################
## Brotli compression middleware
## Key listings can be large; compress JSON bodies for clients sending
## 'Accept-Encoding: br'.
#############################################
class BrotliCompression(BaseHTTPMiddleware):
    def __init__(self, app, minimum_size: int = 512, quality: int = 5):
        super().__init__(app)
        self.minimum_size = minimum_size
        self.quality = quality

    def _wants_brotli(self, request: Request) -> bool:
        accepted = [p.split(';')[0].strip() for p in request.headers.get('accept-encoding', '').lower().split(',')]
        return 'br' in accepted

    def _compressible(self, response: Response) -> bool:
        if response.headers.get('content-encoding'):
            return False
        content_type = response.headers.get('content-type', '')
        return any(content_type.startswith(t) for t in COMPRESSIBLE_TYPES)

    async def dispatch(self, request: Request, call_next):
        if not self._wants_brotli(request):
            return await call_next(request)

        response = await call_next(request)
        if not self._compressible(response):
            return response

        # call_next hands back a streaming response; collect the body first
        body = b''
        async for chunk in response.body_iterator:
            body += chunk if isinstance(chunk, bytes) else chunk.encode('utf-8')
        headers = dict(response.headers)

        if len(body) < self.minimum_size:
            return Response(content=body, status_code=response.status_code, headers=headers)

        try:
            compressed = brotli.compress(body, quality=self.quality)
        except brotli.error:
            return Response(content=body, status_code=response.status_code, headers=headers)

        headers['content-encoding'] = 'br'
        headers['vary'] = 'Accept-Encoding'
        headers['content-length'] = str(len(compressed))
        return Response(content=compressed, status_code=response.status_code, headers=headers)
