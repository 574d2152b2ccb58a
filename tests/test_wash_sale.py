"""
Unit Tests for Wash Sale Detection
"""

from datetime import timedelta
from decimal import Decimal

from modules.tax.engine import match_stock_transactions
from modules.tax.tax_events import LotClosure, HoldingTerm, StockTrade, TradeSide
from modules.tax.wash_sale import detect_wash_sales, find_replacement_purchase


class TestWashSaleFlagging:

    def test_repurchase_after_loss_is_flagged(self, make_txn, base_date):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "XYZ", day=60, quantity=10, price=14),
        ])
        sell = results.sell_trades[0]

        expected_date = (base_date + timedelta(days=60)).strftime('%m/%d/%Y')
        assert sell.realized_pl == Decimal("-50")
        assert sell.is_wash_sale is True
        assert sell.wash_sale_note == f"Potential wash sale: bought on {expected_date}"

    def test_repurchase_before_loss_is_flagged(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("BUY", "XYZ", day=25, quantity=5, price=19),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
        ])
        assert results.sell_trades[0].is_wash_sale is True

    def test_window_is_inclusive_at_30_days(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "XYZ", day=70, quantity=10, price=14),
        ])
        assert results.sell_trades[0].is_wash_sale is True

    def test_repurchase_outside_window_not_flagged(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "XYZ", day=71, quantity=10, price=14),
        ])
        sell = results.sell_trades[0]
        assert sell.is_wash_sale is False
        assert sell.wash_sale_note is None

    def test_opening_purchase_is_not_its_own_replacement(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=10, quantity=10, price=15),
        ])
        assert results.sell_trades[0].is_wash_sale is False

    def test_gains_never_flagged(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=10),
            make_txn("SELL", "XYZ", day=10, quantity=10, price=15),
            make_txn("BUY", "XYZ", day=15, quantity=10, price=14),
        ])
        assert results.sell_trades[0].is_wash_sale is False

    def test_symbol_case_does_not_hide_replacement(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "xyz", day=45, quantity=10, price=14),
        ])
        assert results.sell_trades[0].is_wash_sale is True

    def test_zero_quantity_buy_not_a_replacement(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "XYZ", day=50, quantity=0, price=14),
        ])
        assert results.sell_trades[0].is_wash_sale is False

    def test_other_symbol_not_a_replacement(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "ABC", day=45, quantity=10, price=14),
        ])
        assert results.sell_trades[0].is_wash_sale is False

    def test_loss_basis_not_adjusted(self, make_txn):
        results = match_stock_transactions([
            make_txn("BUY", "XYZ", day=0, quantity=10, price=20),
            make_txn("SELL", "XYZ", day=40, quantity=10, price=15),
            make_txn("BUY", "XYZ", day=60, quantity=10, price=14),
        ])
        assert results.total_realized_losses == Decimal("-50")
        assert results.open_positions["XYZ"][0].cost_per_share == Decimal("14")


class TestDetectWashSales:
    """Direct calls on prepared trades."""

    def _losing_sell(self, base_date, day):
        return StockTrade(
            date=base_date + timedelta(days=day),
            symbol="XYZ",
            type=TradeSide.SELL,
            quantity=Decimal("10"),
            price=Decimal("15"),
            total_cost=Decimal("200"),
            total_proceeds=Decimal("150"),
            realized_pl=Decimal("-50"),
            term=HoldingTerm.SHORT,
            lots=[LotClosure(
                quantity=Decimal("10"),
                cost=Decimal("200"),
                proceeds=Decimal("150"),
                realized_pl=Decimal("-50"),
                term=HoldingTerm.SHORT,
                acquisition_date=base_date,
                days_held=day,
            )],
        )

    def test_returns_number_flagged(self, make_txn, base_date):
        trades = [self._losing_sell(base_date, 40), self._losing_sell(base_date, 200)]
        transactions = [make_txn("BUY", "XYZ", day=50, quantity=1, price=14)]

        assert detect_wash_sales(trades, transactions) == 1
        assert trades[0].is_wash_sale is True
        assert trades[1].is_wash_sale is False

    def test_first_replacement_in_date_order(self, make_txn, base_date):
        trade = self._losing_sell(base_date, 40)
        replacement = find_replacement_purchase(trade, [
            make_txn("BUY", "XYZ", day=20, quantity=1, price=14),
            make_txn("BUY", "XYZ", day=50, quantity=1, price=14),
        ])
        assert replacement.date == base_date + timedelta(days=20)

    def test_custom_window(self, make_txn, base_date):
        trade = self._losing_sell(base_date, 40)
        transactions = [make_txn("BUY", "XYZ", day=50, quantity=1, price=14)]

        assert find_replacement_purchase(trade, transactions, window_days=5) is None
        assert find_replacement_purchase(trade, transactions, window_days=10) is not None
