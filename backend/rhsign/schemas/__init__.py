from rhsign.schemas import common, document, public
