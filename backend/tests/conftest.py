import pytest

from app.config import CommandCenterConfig
from app.sources.base import MasterData, MasterCustomer, MasterProduct

from tests.factories import (
    FakeDataSource, activity, approval, line, order, product, session_info, stock,
)


@pytest.fixture
def config():
    return CommandCenterConfig()


@pytest.fixture
def clean_master():
    """모든 점검을 통과하는 마스터 데이터"""
    return MasterData(
        products=[
            MasterProduct(
                product_code="SKU-1", name="Selpak Havlu 6'lı", unit="PAKET", unit2="KOLI",
                unit2_factor=4, vat_rate=0.2, cost_price=120.0, has_image=True,
            ),
        ],
        customers=[MasterCustomer(customer_code="120.01.001", name="Anadolu Temizlik", payment_plan_code="30G")],
        stock=[stock("SKU-1", 30)],
        shelf_product_codes={"SKU-1"},
        pending_lines=[("O-100", line("SKU-1", 50))],
    )


@pytest.fixture
def source(clean_master):
    """O-100 시나리오 + 각 섹션에 데이터가 있는 원천"""
    return FakeDataSource(
        orders=[
            order("O-100", line("SKU-1", 50), day=0),
            order("O-101", line("SKU-2", 5, row=1), line("SKU-3", 4, row=2), series="B", day=1),
        ],
        stock=[
            stock("SKU-1", 20, "DEPO1"),
            stock("SKU-1", 10, "MERKEZ"),
            stock("SKU-1", 500, "IADE"),
            stock("SKU-2", 100),
            stock("SKU-3", 100),
            stock("SKU-9", 60),
        ],
        catalog=[
            product("SKU-1", family="HAVLU", brand="SELPAK", price=100.0),
            product("SKU-9", family="HAVLU", brand="SELPAK", price=95.0),
            product("SKU-2", category_id=2),
            product("SKU-3", category_id=2),
        ],
        sessions=[session_info("O-101", status="PICKING")],
        activities=[
            activity(1, cart_amount=900, cart_items=3, cart_days_ago=0, average_order_value=1000, order_count_90d=6,
                     order_count_30d=2, last_order_days_ago=3),
            activity(9, code="C-9"),
        ],
        approvals=[approval(1), approval(2, payment_plan=None)],
        master=clean_master,
    )
