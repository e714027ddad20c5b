from fastapi import Request

from voice_relay.services.relay_controller import RelayController


def get_relay_controller(request: Request) -> RelayController:
    return request.app.state.relay_controller
