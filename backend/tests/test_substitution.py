from app.config import SubstitutionConfig
from app.engines.atp import AllocationRun, allocate, summarize
from app.engines.substitution import SubstitutionEngine, price_proximity, stock_sufficiency
from app.schemas.command_center import AtpSection

from tests.factories import FakeDataSource, line, order, product, stock


def _run(orders, stock_rows) -> AllocationRun:
    allocated, remaining = allocate(orders, stock_rows)
    return AllocationRun(section=AtpSection(summary=summarize(allocated), orders=allocated), remaining_stock=remaining)


def test_price_proximity():
    assert price_proximity(100.0, 100.0) == 1.0
    assert price_proximity(100.0, 90.0) == 0.9
    assert price_proximity(100.0, 250.0) == 0.0
    assert price_proximity(None, 90.0) == 0.5
    assert price_proximity(100.0, None) == 0.5


def test_stock_sufficiency():
    assert stock_sufficiency(30, 20) == 1.0
    assert stock_sufficiency(10, 20) == 0.25
    assert stock_sufficiency(0, 20) == 0.0


async def test_shortage_line_gets_suggestion_with_needed_qty():
    source = FakeDataSource(catalog=[
        product("SKU-1", family="HAVLU", brand="SELPAK", price=100.0),
        product("SKU-9", family="HAVLU", brand="SELPAK", price=95.0),
    ])
    run = _run([order("O-100", line("SKU-1", 50))], [stock("SKU-1", 30), stock("SKU-9", 60)])

    section = await SubstitutionEngine(source, SubstitutionConfig()).run(run)

    assert len(section.suggestions) == 1
    suggestion = section.suggestions[0]
    assert suggestion.mikro_order_number == "O-100"
    assert suggestion.source_product_code == "SKU-1"
    assert suggestion.line_key == "SKU-1#1"
    assert suggestion.shortage_qty == 20
    assert suggestion.needed_qty == 20
    assert [c.product_code for c in suggestion.candidates] == ["SKU-9"]
    assert "Aynı marka" in suggestion.candidates[0].reason
    assert section.summary.lines_needing_substitution == 1
    assert section.summary.lines_with_suggestion == 1


async def test_candidates_ranked_and_truncated_to_top_three():
    source = FakeDataSource(
        catalog=[
            product("SRC", category_id=1, price=100.0, brand="X"),
            product("C-1", category_id=1, price=100.0, brand="X"),
            product("C-2", category_id=1, price=100.0),
            product("C-3", category_id=1, price=150.0),
            product("C-4", category_id=1, price=300.0),
            product("C-5", category_id=2, price=100.0),
        ],
        co_occurrence={("SRC", "C-3"): 4, ("SRC", "C-2"): 1},
    )
    run = _run(
        [order("O-1", line("SRC", 10))],
        [stock("C-1", 50), stock("C-2", 50), stock("C-3", 50), stock("C-4", 50), stock("C-5", 50)],
    )

    section = await SubstitutionEngine(source, SubstitutionConfig()).run(run)

    candidates = section.suggestions[0].candidates
    assert len(candidates) == 3
    scores = [c.score for c in candidates]
    assert scores == sorted(scores, reverse=True)
    assert all(0 <= s <= 100 for s in scores)
    # C-3: 17.5 + 40 + 25 = 82.5, C-2: 35 + 40 + 6.25, C-1: 35 + 40 + 브랜드 5, C-4: 0 + 40
    assert [c.product_code for c in candidates] == ["C-3", "C-2", "C-1"]
    assert candidates[0].score == 82.5
    assert candidates[2].score == 80.0
    assert candidates[0].reason == "4 siparişte birlikte alındı | Stok 50 ADET"


async def test_candidates_need_stock_left_after_allocation():
    source = FakeDataSource(catalog=[product("SRC"), product("ALT")])
    # ALT 재고는 더 오래된 주문이 모두 가져갔다
    run = _run(
        [order("O-1", line("ALT", 10), day=0), order("O-2", line("SRC", 5), day=1)],
        [stock("ALT", 10)],
    )

    section = await SubstitutionEngine(source, SubstitutionConfig()).run(run)

    assert len(section.suggestions) == 1
    assert section.suggestions[0].candidates == []
    assert section.summary.unresolved_lines == 1


async def test_unknown_source_product_is_listed_without_candidates():
    source = FakeDataSource(catalog=[product("ALT")])
    run = _run([order("O-1", line("GHOST", 3))], [stock("ALT", 100)])

    section = await SubstitutionEngine(source, SubstitutionConfig()).run(run)

    assert section.suggestions[0].source_product_code == "GHOST"
    assert section.suggestions[0].candidates == []


async def test_family_grouping_can_be_disabled():
    catalog = [
        product("SRC", category_id=1, family="F"),
        product("SAME-FAMILY", category_id=2, family="F"),
        product("SAME-CATEGORY", category_id=1, family="G"),
    ]
    run = _run([order("O-1", line("SRC", 1))], [stock("SAME-FAMILY", 5), stock("SAME-CATEGORY", 5)])

    by_family = await SubstitutionEngine(FakeDataSource(catalog=catalog), SubstitutionConfig()).run(run)
    by_category = await SubstitutionEngine(
        FakeDataSource(catalog=catalog), SubstitutionConfig(use_product_families=False)
    ).run(run)

    assert [c.product_code for c in by_family.suggestions[0].candidates] == ["SAME-FAMILY"]
    assert [c.product_code for c in by_category.suggestions[0].candidates] == ["SAME-CATEGORY"]


async def test_no_shortage_skips_catalog_reads():
    source = FakeDataSource()
    run = _run([order("O-1", line("SKU-1", 5))], [stock("SKU-1", 5)])

    section = await SubstitutionEngine(source, SubstitutionConfig()).run(run)

    assert section.suggestions == []
    assert source.calls == []


async def test_max_lines_bound():
    source = FakeDataSource(catalog=[])
    run = _run([order(f"O-{i}", line("SKU-1", 1), day=i) for i in range(10)], [])

    section = await SubstitutionEngine(source, SubstitutionConfig(max_lines=4)).run(run)

    assert [s.mikro_order_number for s in section.suggestions] == ["O-0", "O-1", "O-2", "O-3"]
