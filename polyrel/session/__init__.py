from polyrel.session.session import Session
from polyrel.session.transaction import Transaction
