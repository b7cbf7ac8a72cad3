from importlib import import_module

from finvue.aggregation import filter_by_range
from finvue.core.models import TransactionType


def get_output(name, config):
    path = config['output_modules'][name]
    module_name, cls_name = path.rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)(config)


def export_filter(transactions, start_date=None, end_date=None, tx_type=None):
    """Select the rows an export should contain, keeping their order."""
    txs = filter_by_range(transactions, start_date, end_date)
    if tx_type and tx_type != 'all':
        wanted = TransactionType(tx_type)
        txs = [t for t in txs if t.type is wanted]
    return txs
