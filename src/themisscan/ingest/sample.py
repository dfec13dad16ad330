SAMPLE_CONTRACT = """CONTRATO DE PRESTAÇÃO DE SERVIÇOS DE MARKETING

ENTRE:
CLIENTE: Empresa X Ltda...
CONTRATADA: Agência Y...

CLÁUSULA 3 - PAGAMENTO
O CLIENTE pagará R$ 5.000,00 mensais. Em caso de atraso, multa de 100% sobre o valor.

CLÁUSULA 7 - RESCISÃO
A CONTRATADA pode rescindir este contrato a qualquer momento sem aviso prévio. O CLIENTE deve dar aviso prévio de 180 dias.

CLÁUSULA 9 - FORO
Fica eleito o foro da Comarca de Nova Iorque, EUA, para dirimir quaisquer dúvidas."""
