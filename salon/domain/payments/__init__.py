"""Payment domain - deposits and the payment webhook"""
