from rofi_totp.cli import run


run()
