"""
데모 데이터 시딩 스크립트
- Categories 4개, Products 약 40개, 창고 재고 3개 창고, 선반 위치
- Customers 25개 (잔액/결제 지연 포함), 장바구니, 포털 주문
- ERP 미출하 주문 + 피킹 세션
- 일부 레코드는 데이터 품질 점검에 걸리도록 의도적으로 불량 값으로 생성
- 실행: cd backend && python seed_data.py
"""

import random
import sys
import os
from datetime import datetime, timedelta, timezone

# backend/ 디렉토리 기준으로 app 패키지를 찾을 수 있도록 경로 설정
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.database import engine, SessionLocal, Base
from app.models import (
    Cart, CartItem, Category, Customer, CustomerBalance, Order, OrderItem, PaymentDelay,
    PendingOrder, PendingOrderLine, PickingSession, PickingSessionLine, Product,
    ShelfLocation, WarehouseStock,
)
from app.models.order import OrderStatus
from app.models.picking import PickingStatus

random.seed(20261019)

NOW = datetime.now(timezone.utc).replace(tzinfo=None)

WAREHOUSES = ["DEPO1", "MERKEZ", "IADE"]  # IADE(반품 창고)는 ATP 풀에 포함되지 않음

CATEGORIES = [
    ("TK", "Temizlik Kağıtları"),
    ("DT", "Deterjanlar"),
    ("AMB", "Ambalaj Ürünleri"),
    ("HJ", "Hijyen Ürünleri"),
]

# (카테고리 코드, 상품군, 브랜드, 상품명, 단위, 2차 단위, 환산 계수, 정가)
PRODUCT_TEMPLATES = [
    ("TK", "TK-HAVLU", "SELPAK", "Selpak Rulo Havlu 6'lı", "PAKET", "KOLI", 4, 189.0),
    ("TK", "TK-HAVLU", "SOLO", "Solo Rulo Havlu 6'lı", "PAKET", "KOLI", 4, 179.0),
    ("TK", "TK-HAVLU", "PAPIA", "Papia Rulo Havlu 8'li", "PAKET", "KOLI", 3, 235.0),
    ("TK", "TK-HAVLU", "SELPAK", "Selpak Endüstriyel Havlu 3 kg", "ADET", "KOLI", 2, 420.0),
    ("TK", "TK-TUVALET", "SELPAK", "Selpak Tuvalet Kağıdı 32'li", "PAKET", "KOLI", 2, 329.0),
    ("TK", "TK-TUVALET", "SOLO", "Solo Tuvalet Kağıdı 32'li", "PAKET", "KOLI", 2, 315.0),
    ("TK", "TK-TUVALET", "PAPIA", "Papia Tuvalet Kağıdı 24'lü", "PAKET", "KOLI", 3, 289.0),
    ("TK", "TK-PECETE", "SELPAK", "Selpak Peçete 100'lü", "PAKET", "KOLI", 24, 38.0),
    ("TK", "TK-PECETE", "SOLO", "Solo Peçete 100'lü", "PAKET", "KOLI", 24, 35.0),
    ("TK", "TK-PECETE", "FAMILIA", "Familia Peçete 150'li", "PAKET", "KOLI", 18, 49.0),
    ("DT", "DT-CAMASIR", "ABC", "ABC Matik Toz Deterjan 9 kg", "ADET", "KOLI", 2, 499.0),
    ("DT", "DT-CAMASIR", "OMO", "Omo Matik Toz Deterjan 9 kg", "ADET", "KOLI", 2, 569.0),
    ("DT", "DT-CAMASIR", "ALO", "Alo Matik Toz Deterjan 8 kg", "ADET", "KOLI", 2, 459.0),
    ("DT", "DT-BULASIK", "PRIL", "Pril Bulaşık Deterjanı 4 L", "ADET", "KOLI", 4, 189.0),
    ("DT", "DT-BULASIK", "FAIRY", "Fairy Bulaşık Deterjanı 4 L", "ADET", "KOLI", 4, 219.0),
    ("DT", "DT-BULASIK", "ABC", "ABC Bulaşık Deterjanı 4 L", "ADET", "KOLI", 4, 149.0),
    ("DT", "DT-YUZEY", "CIF", "Cif Yüzey Temizleyici 2,5 L", "ADET", "KOLI", 6, 129.0),
    ("DT", "DT-YUZEY", "DOMESTOS", "Domestos Çamaşır Suyu 3,5 L", "ADET", "KOLI", 4, 99.0),
    ("DT", "DT-YUZEY", "ACE", "Ace Çamaşır Suyu 3,5 L", "ADET", "KOLI", 4, 89.0),
    ("AMB", "AMB-POSET", "EKO", "Eko Çöp Poşeti Battal 10'lu", "RULO", "KOLI", 50, 42.0),
    ("AMB", "AMB-POSET", "KOROPLAST", "Koroplast Çöp Poşeti Jumbo 10'lu", "RULO", "KOLI", 40, 55.0),
    ("AMB", "AMB-POSET", "EKO", "Eko Çöp Poşeti Orta 20'li", "RULO", "KOLI", 50, 31.0),
    ("AMB", "AMB-STREC", "KOROPLAST", "Koroplast Streç Film 30 cm", "RULO", "KOLI", 6, 145.0),
    ("AMB", "AMB-STREC", "EKO", "Eko Streç Film 45 cm", "RULO", "KOLI", 6, 175.0),
    ("AMB", "AMB-BARDAK", "EKO", "Eko Karton Bardak 7 oz 1000'li", "KOLI", None, None, 610.0),
    ("AMB", "AMB-BARDAK", "PAPERCUP", "Papercup Karton Bardak 7 oz 1000'li", "KOLI", None, None, 655.0),
    ("HJ", "HJ-SABUN", "HACI SAKIR", "Hacı Şakir Sıvı Sabun 5 L", "ADET", "KOLI", 4, 159.0),
    ("HJ", "HJ-SABUN", "DALAN", "Dalan Sıvı Sabun 5 L", "ADET", "KOLI", 4, 149.0),
    ("HJ", "HJ-SABUN", "PROTEX", "Protex Sıvı Sabun 3 L", "ADET", "KOLI", 6, 139.0),
    ("HJ", "HJ-ELDIVEN", "BEYBI", "Beybi Nitril Eldiven M 100'lü", "KUTU", "KOLI", 10, 119.0),
    ("HJ", "HJ-ELDIVEN", "BEYBI", "Beybi Nitril Eldiven L 100'lü", "KUTU", "KOLI", 10, 119.0),
    ("HJ", "HJ-ELDIVEN", "ECOMED", "Ecomed Vinil Eldiven M 100'lü", "KUTU", "KOLI", 10, 89.0),
    ("HJ", "HJ-DEZENFEKTAN", "DETTOL", "Dettol El Dezenfektanı 1 L", "ADET", "KOLI", 12, 169.0),
    ("HJ", "HJ-DEZENFEKTAN", "HACI SAKIR", "Hacı Şakir El Dezenfektanı 1 L", "ADET", "KOLI", 12, 119.0),
]

CUSTOMER_NAMES = [
    "Anadolu Temizlik Ltd.", "Boğaziçi Otelcilik A.Ş.", "Çınar Market", "Deniz Catering",
    "Ege Hastane Hizmetleri", "Fırat Okulları", "Güneş Restoran Grubu", "Hilal Gıda",
    "Işık Ofis Hizmetleri", "Kardeşler Toptan", "Lale Kafe", "Marmara Site Yönetimi",
    "Nehir Spor Kulübü", "Orkide Kuaför", "Pınar Eczanesi", "Rota Lojistik",
    "Sedir Apartman Yönetimi", "Toros Fabrika", "Umut Kreş", "Vadi Rezidans",
    "Yıldız Market", "Zeytin Pansiyon", "Akdeniz Belediyesi", "Başkent Plaza", "Karadeniz AVM",
]

PAYMENT_PLANS = ["PESIN", "30G", "45G", "60G"]
CLASSIFICATIONS = [None, None, None, "NORMAL", "TAKIP", "RISKLI", "BLOKE"]
SERIES = ["A", "B", "C", ""]


def seed_catalog(session):
    """카테고리 + 상품 (일부 불량 마스터 데이터 포함)"""
    categories = {}
    for code, name in CATEGORIES:
        category = Category(code=code, name=name)
        session.add(category)
        categories[code] = category
    session.flush()

    products = []
    for idx, (cat, family, brand, name, unit, unit2, factor, price) in enumerate(PRODUCT_TEMPLATES, start=1):
        products.append(Product(
            product_code=f"B{100000 + idx * 7}",
            name=name,
            unit=unit,
            unit2=unit2,
            unit2_factor=factor,
            vat_rate=0.2 if cat != "HJ" else 0.1,
            cost_price=round(price * random.uniform(0.62, 0.78), 2),
            list_price=price,
            brand_code=brand,
            family_code=family,
            category_id=categories[cat].id,
            image_url=f"https://cdn.example.com/urun/{idx}.jpg" if idx % 5 else None,
        ))

    # 데이터 품질 점검용 불량 레코드
    products[3].cost_price = None
    products[8].vat_rate = 0.0
    products[12].unit2_factor = 0
    products[20].unit = ""
    products.append(Product(
        product_code="B999001", name="123", unit="ADET", vat_rate=0.2, cost_price=10.0,
        list_price=15.0, category_id=categories["AMB"].id,
    ))

    session.add_all(products)
    session.commit()
    print(f"  [OK] Categories: {len(categories)}개, Products: {len(products)}개 생성")
    return products


def seed_stock(session, products):
    """창고별 재고 + 선반 위치 (일부 상품은 재고 부족/음수)"""
    stocks = []
    shelves = []
    for idx, product in enumerate(products):
        for warehouse in WAREHOUSES:
            if warehouse == "IADE":
                qty = random.randint(0, 20)
            elif idx % 6 == 0:
                qty = random.randint(0, 8)  # 부족 유발
            else:
                qty = random.randint(20, 300)
            stocks.append(WarehouseStock(warehouse_code=warehouse, product_code=product.product_code, available_qty=qty))
        if idx % 7 != 0:
            shelves.append(ShelfLocation(
                warehouse_code="DEPO1",
                product_code=product.product_code,
                shelf_code=f"{chr(65 + idx % 6)}-{idx % 12 + 1:02d}-{idx % 4 + 1}",
            ))

    # 음수 재고 (ERP 동기화 오차)
    stocks[5].available_qty = -4

    session.add_all(stocks + shelves)
    session.commit()
    print(f"  [OK] WarehouseStock: {len(stocks)}개, ShelfLocation: {len(shelves)}개 생성")
    return stocks


def seed_customers(session):
    """고객 + 잔액 + 최근 결제 지연"""
    customers = []
    for idx, name in enumerate(CUSTOMER_NAMES, start=1):
        customers.append(Customer(
            customer_code=f"120.01.{idx:03d}",
            name=name,
            payment_plan_code=random.choice(PAYMENT_PLANS) if idx % 9 else None,
            credit_limit=random.choice([None, 50000.0, 100000.0, 250000.0]),
        ))
    session.add_all(customers)
    session.flush()

    balances, delays = [], []
    for idx, customer in enumerate(customers):
        if idx % 8 == 7:
            continue  # 잔액 이력 없는 고객
        past_due = random.choice([0.0, 0.0, random.uniform(1000, 40000)])
        not_due = random.uniform(0, 60000)
        balances.append(CustomerBalance(
            customer_id=customer.id,
            past_due_balance=round(past_due, 2),
            not_due_balance=round(not_due, 2),
            total_balance=round(past_due + not_due, 2),
            classification=random.choice(CLASSIFICATIONS),
            manual_risk_score=random.choice([None, None, None, 40, 75]),
        ))
        for _ in range(random.choice([0, 0, 1, 2, 4])):
            delays.append(PaymentDelay(
                customer_id=customer.id,
                due_date=(NOW - timedelta(days=random.randint(5, 170))).date(),
                days_late=random.randint(3, 45),
                amount=round(random.uniform(500, 15000), 2),
            ))

    session.add_all(balances + delays)
    session.commit()
    print(f"  [OK] Customers: {len(customers)}개 (잔액 {len(balances)}, 결제 지연 {len(delays)}건)")
    return customers


def seed_portal_activity(session, customers, products):
    """장바구니 + 포털 주문 (승인 완료/대기)"""
    sellable = [p for p in products if p.list_price]
    carts, orders = [], []

    for idx, customer in enumerate(customers):
        if idx % 3 != 2:
            cart = Cart(customer_id=customer.id, updated_at=NOW - timedelta(hours=random.randint(1, 24 * 20)))
            for product in random.sample(sellable, random.randint(1, 5)):
                cart.items.append(CartItem(
                    product_code=product.product_code,
                    quantity=random.randint(1, 20),
                    unit_price=product.list_price,
                ))
            carts.append(cart)

        order_count = random.choice([0, 1, 2, 4, 7])
        for n in range(order_count):
            created_at = NOW - timedelta(days=random.randint(0, 120), hours=random.randint(0, 23))
            status = OrderStatus.PENDING if n == 0 and idx % 2 == 0 else random.choice(
                [OrderStatus.APPROVED, OrderStatus.APPROVED, OrderStatus.CANCELLED]
            )
            if status == OrderStatus.PENDING:
                created_at = NOW - timedelta(hours=random.randint(1, 72))
            order = Order(
                order_number=f"B2B-{created_at:%Y%m%d}-{idx:02d}{n:02d}",
                customer_id=customer.id,
                status=status,
                created_at=created_at,
            )
            total = 0.0
            for product in random.sample(sellable, random.randint(2, 6)):
                qty = random.randint(1, 30)
                order.items.append(OrderItem(product_code=product.product_code, quantity=qty, unit_price=product.list_price))
                total += qty * product.list_price
            order.total_amount = round(total, 2)
            orders.append(order)

    session.add_all(carts + orders)
    session.commit()
    pending = sum(1 for o in orders if o.status == OrderStatus.PENDING)
    print(f"  [OK] Carts: {len(carts)}개, Orders: {len(orders)}건 (승인 대기 {pending}건)")
    return orders


def seed_erp_orders(session, customers, products):
    """ERP 미출하 주문 + 일부 피킹 세션"""
    pending_orders = []
    sequence = {s: 1000 for s in SERIES}

    for n in range(45):
        series = random.choice(SERIES)
        sequence[series] += 1
        customer = random.choice(customers)
        order_number = f"{series or 'X'}-{sequence[series]}"
        order = PendingOrder(
            mikro_order_number=order_number,
            order_series=series,
            order_sequence=sequence[series],
            customer_code=customer.customer_code,
            customer_name=customer.name,
            order_date=NOW - timedelta(days=random.randint(0, 14), minutes=n),
            delivery_date=NOW + timedelta(days=random.randint(1, 5)),
        )
        for row, product in enumerate(random.sample(products, random.randint(1, 9)), start=1):
            quantity = float(random.randint(5, 80))
            delivered = float(random.choice([0, 0, 0, random.randint(0, int(quantity))]))
            order.lines.append(PendingOrderLine(
                row_number=row,
                product_code=product.product_code,
                product_name=product.name,
                unit=product.unit or "ADET",
                quantity=quantity,
                delivered_qty=delivered,
                reserved_qty=0,
                warehouse_code="DEPO1",
            ))
        pending_orders.append(order)

    # 카탈로그에 없는 상품 라인 + 예약 초과 라인
    pending_orders[0].lines.append(PendingOrderLine(
        row_number=99, product_code="B000404", product_name="Eski Kod Ürün", unit="ADET",
        quantity=10, delivered_qty=0, reserved_qty=0,
    ))
    first_line = pending_orders[1].lines[0]
    first_line.reserved_qty = first_line.quantity + 5

    session.add_all(pending_orders)
    session.flush()

    pickers = [("u-101", "Mehmet Yılmaz"), ("u-102", "Ayşe Demir"), ("u-103", "Ali Kaya")]
    sessions = []
    for order in pending_orders[:12]:
        status = random.choice([PickingStatus.PICKING, PickingStatus.PICKING, PickingStatus.READY_FOR_LOADING,
                                PickingStatus.PENDING, PickingStatus.PARTIALLY_LOADED])
        picker = random.choice(pickers + [(None, None)]) if status != PickingStatus.PENDING else (None, None)
        picking = PickingSession(
            mikro_order_number=order.mikro_order_number,
            status=status,
            picker_user_id=picker[0],
            picker_name=picker[1],
            last_action_at=NOW - timedelta(minutes=random.randint(1, 240)),
        )
        for line in order.lines:
            remaining = max(line.quantity - line.delivered_qty, 0)
            picking.lines.append(PickingSessionLine(
                product_code=line.product_code,
                remaining_qty=remaining,
                picked_qty=float(random.randint(0, int(remaining))),
            ))
        sessions.append(picking)

    session.add_all(sessions)
    session.commit()
    line_count = sum(len(o.lines) for o in pending_orders)
    print(f"  [OK] PendingOrders: {len(pending_orders)}건 ({line_count} 라인), PickingSessions: {len(sessions)}건")
    return pending_orders


def main():
    print("=" * 60)
    print("B2B 운영 커맨드 센터 — 데모 데이터 시딩")
    print("=" * 60)

    # 테이블 전체 재생성
    print("\n[1/6] 테이블 생성 중...")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("  [OK] 테이블 생성 완료")

    session = SessionLocal()
    try:
        print("\n[2/6] Catalog 시딩...")
        products = seed_catalog(session)

        print("\n[3/6] Stock 시딩...")
        seed_stock(session, products)

        print("\n[4/6] Customers 시딩...")
        customers = seed_customers(session)

        print("\n[5/6] Portal 활동 시딩...")
        seed_portal_activity(session, customers, products)

        print("\n[6/6] ERP 미출하 주문 시딩...")
        seed_erp_orders(session, customers, products)

        print("\n" + "=" * 60)
        print("시딩 완료!")
        print("=" * 60)

    except Exception as e:
        session.rollback()
        print(f"\n[ERROR] 시딩 실패: {e}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
