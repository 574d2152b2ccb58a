"""
Unit Tests for the Brokerage CSV Normalizer

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from lib.parsers.brokerage_csv import (
    BrokerageCSVParser,
    CSVFormatError,
    classify_fidelity_action,
    classify_schwab_action,
    compact_schwab_option_symbol,
    detect_source,
    parse_date,
)
from lib.parsers.transaction import TransactionType
from modules.gains.aggregator import calculate_gains_losses
from modules.options.positions import OptionStrategy

FIDELITY_CSV = """Brokerage

Run Date,Action,Symbol,Description,Type,Quantity,Price ($),Commission ($),Fees ($),Accrued Interest ($),Amount ($),Settlement Date
01/02/2024,YOU BOUGHT APPLE INC (AAPL) (Cash),AAPL,APPLE INC,Cash,10,150.00,0,0.02,,-1500.02,01/04/2024
03/15/2024,YOU SOLD OPENING TRANSACTION CALL (AAPL) APPLE INC APR 19 24 $200 (100 SHS) (Margin),-AAPL240419C200,CALL (AAPL) APPLE INC,Margin,-1,1.50,0.65,0.03,,149.32,03/18/2024
04/19/2024,EXPIRED CALL (AAPL) APPLE INC APR 19 24 $200 (100 SHS) (Margin),-AAPL240419C200,CALL (AAPL) APPLE INC,Margin,1,,,,,,
05/10/2024,DIVIDEND RECEIVED APPLE INC (AAPL) (Cash),AAPL,APPLE INC,Cash,,,,,,2.50,
06/03/2024,YOU SOLD APPLE INC (AAPL) (Cash),AAPL,APPLE INC,Cash,-10,190.00,0,0.05,,1899.95,06/05/2024
06/04/2024,Electronic Funds Transfer Received (Cash),,No Description,Cash,,,,,,500.00,

"The data and information in this spreadsheet is provided to you solely for your use"
"""

SCHWAB_CSV = """"Date","Action","Symbol","Description","Quantity","Price","Fees & Comm","Amount"
"02/01/2024","Buy","MSFT","MICROSOFT CORP","10","$400.00","","-$4,000.00"
"02/15/2024 as of 02/14/2024","Sell to Open","MSFT 03/15/2024 450.00 C","CALL MICROSOFT CORP $450 EXP 03/15/24","1","$5.00","$0.66","$499.34"
"03/15/2024","Expired","MSFT 03/15/2024 450.00 C","CALL MICROSOFT CORP $450 EXP 03/15/24","1","","",""
"03/20/2024","Qualified Dividend","MSFT","MICROSOFT CORP","","","","$7.50"
"04/01/2024","Sell","MSFT","MICROSOFT CORP","10","$420.00","$0.05","$4,199.95"
"""


class TestSourceDetection:

    def test_fidelity_headers(self):
        assert detect_source(["Run Date", "Action", "Symbol", "Settlement Date"]) == "fidelity"

    def test_schwab_exchange_headers(self):
        assert detect_source(["Date", "Action", "Symbol", "Exchange Rate"]) == "schwab"

    def test_schwab_fee_column(self):
        assert detect_source(["Date", "Action", "Symbol", "Fees & Comm", "Amount"]) == "schwab"

    def test_unknown_defaults_to_fidelity(self):
        assert detect_source(["Date", "Action", "Symbol"]) == "fidelity"


class TestActionClassification:

    @pytest.mark.parametrize("action,is_option,expected", [
        ("YOU BOUGHT APPLE INC (AAPL)", False, TransactionType.BUY),
        ("YOU SOLD APPLE INC (AAPL)", False, TransactionType.SELL),
        ("YOU SOLD ASSIGNED SHARES", False, TransactionType.SELL),
        ("DIVIDEND RECEIVED APPLE INC", False, TransactionType.DIVIDEND),
        ("YOU SOLD OPENING TRANSACTION CALL (AAPL)", True, TransactionType.OPTION_SELL_OPEN),
        ("YOU BOUGHT OPENING TRANSACTION PUT (AAPL)", True, TransactionType.OPTION_BUY_OPEN),
        ("YOU SOLD CLOSING TRANSACTION PUT (AAPL)", True, TransactionType.OPTION_SELL_CLOSE),
        ("YOU BOUGHT CLOSING TRANSACTION CALL (AAPL)", True, TransactionType.OPTION_BUY_CLOSE),
        ("ASSIGNED CALL (AAPL)", True, TransactionType.OPTION_ASSIGNED),
        ("EXPIRED PUT (AAPL)", True, TransactionType.OPTION_EXPIRED),
        ("INTEREST EARNED", False, TransactionType.OTHER),
    ])
    def test_fidelity(self, action, is_option, expected):
        assert classify_fidelity_action(action, is_option) == expected

    @pytest.mark.parametrize("action,is_option,expected", [
        ("Buy", False, TransactionType.BUY),
        ("Sell", False, TransactionType.SELL),
        ("Sell to Open", True, TransactionType.OPTION_SELL_OPEN),
        ("Buy to Open", True, TransactionType.OPTION_BUY_OPEN),
        ("Buy to Close", True, TransactionType.OPTION_BUY_CLOSE),
        ("Sell to Close", True, TransactionType.OPTION_SELL_CLOSE),
        ("Expired", True, TransactionType.OPTION_EXPIRED),
        ("Assigned", True, TransactionType.OPTION_ASSIGNED),
        ("Qualified Dividend", False, TransactionType.DIVIDEND),
        ("Journal", False, TransactionType.OTHER),
    ])
    def test_schwab(self, action, is_option, expected):
        assert classify_schwab_action(action, is_option) == expected


class TestHelpers:

    @pytest.mark.parametrize("symbol,expected", [
        ("AAPL 01/17/2025 150.00 C", "AAPL250117C150"),
        ("SPY 12/20/2024 450.50 P", "SPY241220P450.5"),
        ("MSFT", None),
    ])
    def test_compact_schwab_option_symbol(self, symbol, expected):
        assert compact_schwab_option_symbol(symbol) == expected

    @pytest.mark.parametrize("value,expected", [
        ("01/15/2024", datetime(2024, 1, 15)),
        ("02/15/2024 as of 02/14/2024", datetime(2024, 2, 15)),
        ("2024-03-01", datetime(2024, 3, 1)),
        ("yesterday", None),
        ("", None),
        (None, None),
    ])
    def test_parse_date(self, value, expected):
        assert parse_date(value) == expected


class TestFidelityExport:

    @pytest.fixture
    def parser(self):
        return BrokerageCSVParser()

    @pytest.fixture
    def transactions(self, parser):
        return parser.parse(FIDELITY_CSV)

    def test_source_and_row_count(self, parser, transactions):
        assert parser.source == "fidelity"
        # Cash transfer and disclaimer rows carry no symbol
        assert len(transactions) == 5

    def test_types(self, transactions):
        assert [t.transaction_type for t in transactions] == [
            TransactionType.BUY,
            TransactionType.OPTION_SELL_OPEN,
            TransactionType.OPTION_EXPIRED,
            TransactionType.DIVIDEND,
            TransactionType.SELL,
        ]

    def test_stock_buy_fields(self, transactions):
        buy = transactions[0]
        assert buy.date == datetime(2024, 1, 2)
        assert buy.symbol == "AAPL"
        assert buy.quantity == Decimal("10")
        assert buy.price == Decimal("150.00")
        assert buy.fees == Decimal("0.02")
        assert buy.amount == Decimal("-1500.02")
        assert buy.is_option is False
        assert buy.account_type == "Cash"
        assert buy.source == "fidelity"
        assert buy.raw["Symbol"] == "AAPL"

    def test_option_fields(self, transactions):
        sell_open = transactions[1]
        assert sell_open.symbol == "AAPL240419C200"
        assert sell_open.is_option is True
        assert sell_open.quantity == Decimal("1")
        assert sell_open.commission == Decimal("0.65")
        assert sell_open.amount == Decimal("149.32")

    def test_sell_quantity_is_absolute(self, transactions):
        assert transactions[-1].quantity == Decimal("10")

    def test_end_to_end_report(self, transactions):
        report = calculate_gains_losses(transactions)

        # (10 * 190 - 0.05) - (10 * 150 + 0.02)
        assert report.stock_results.net_pl == Decimal("399.93")
        covered = report.option_results.get_strategy(OptionStrategy.COVERED_CALLS)
        assert covered.premium_retained == Decimal("149.32")
        assert report.net_pl == Decimal("549.25")


class TestSchwabExport:

    @pytest.fixture
    def parser(self):
        return BrokerageCSVParser()

    def test_parse(self, parser):
        transactions = parser.parse(SCHWAB_CSV)

        assert parser.source == "schwab"
        assert [t.transaction_type for t in transactions] == [
            TransactionType.BUY,
            TransactionType.OPTION_SELL_OPEN,
            TransactionType.OPTION_EXPIRED,
            TransactionType.DIVIDEND,
            TransactionType.SELL,
        ]

        buy, sell_open = transactions[0], transactions[1]
        assert buy.amount == Decimal("-4000.00")
        assert sell_open.symbol == "MSFT240315C450"
        assert sell_open.is_option is True
        assert sell_open.date == datetime(2024, 2, 15)
        assert sell_open.commission == Decimal("0.66")

    def test_end_to_end_report(self, parser):
        report = calculate_gains_losses(parser.parse(SCHWAB_CSV))

        assert report.stock_results.net_pl == Decimal("199.95")
        assert report.option_results.net_pl == Decimal("499.34")
        assert report.total_realized_gains == Decimal("699.29")


class TestMalformedInput:

    @pytest.fixture
    def parser(self):
        return BrokerageCSVParser()

    @pytest.mark.parametrize("content", ["", "   \n  "])
    def test_empty_content_raises(self, parser, content):
        with pytest.raises(CSVFormatError, match="empty"):
            parser.parse(content)

    def test_missing_header_raises(self, parser):
        with pytest.raises(CSVFormatError, match="header"):
            parser.parse("foo,bar\n1,2\n")

    def test_csv_format_error_is_value_error(self):
        assert issubclass(CSVFormatError, ValueError)

    def test_bad_date_row_skipped(self, parser):
        content = (
            '"Date","Action","Symbol","Description","Quantity","Price","Fees & Comm","Amount"\n'
            '"someday","Buy","MSFT","MICROSOFT CORP","10","$400.00","","-$4,000.00"\n'
            '"02/01/2024","Buy","MSFT","MICROSOFT CORP","10","$400.00","","-$4,000.00"\n'
        )
        transactions = parser.parse(content)

        assert len(transactions) == 1
        assert parser.error_categories == {"invalid_date": 1}

    def test_bad_number_becomes_zero(self, parser):
        content = (
            '"Date","Action","Symbol","Description","Quantity","Price","Fees & Comm","Amount"\n'
            '"02/01/2024","Buy","MSFT","MICROSOFT CORP","10","n/a-ish","","-$4,000.00"\n'
        )
        [txn] = parser.parse(content)

        assert txn.price == 0
        assert parser.error_categories == {"invalid_number": 1}
