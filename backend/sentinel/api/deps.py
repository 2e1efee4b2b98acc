from fastapi import Request, WebSocket

from sentinel.services.classroom import Classroom


def get_classroom(request: Request) -> Classroom:
    return request.app.state.classroom


def get_ws_classroom(ws: WebSocket) -> Classroom:
    return ws.app.state.classroom
