from fastapi import Request

from menu_orders.services.ledger import OrderLedger


def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger
