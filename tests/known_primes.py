"""Fixed safe primes so that the slow paths can be tested without generating keys."""

# 12-bit safe primes: 2579 = 2*1289 + 1, 2819 = 2*1409 + 1
SMALL_P = 2579
SMALL_Q = 2819

# 1536-bit safe primes
P_1536 = int(
    "e84f454a8dd9e923fc85be8ca09278e28c5a3d9419cf118ef56912910f364c529d999dba2837e55d413827ccf97a4b6c49addd56f079032164d487fbd22d5ea9ff0c8fdc6bce1b878a7109f33061874f310ae35ac75db3ac3fd5f49d8b85b8823f05fc288602abf6a4ef641a3766a44d7ecbceebe3bf144a582639b55658e93cc57445715ce83c0e7088ec701ded2bcbd2e91a68cb26b1aaddadf99aeef927fb82459a3805c232e36162cbea024a2fe7485b96eeb278d45016c622261b3d3aa3",
    16,
)
Q_1536 = int(
    "9461f6a273f4bdf08ce0b1071253e0688d622d6b714b407200fa709d964034c1b84b97057a8dd48904a99e83f1cb4c94d6927ac6424b8028eefe6503336e031ff0d7379932b1f6fa457d8a1e4d9436c42df8ba86ad54cc83a708cd6385d4d5cbf0c62f9f692f04e500726d5d41224e2ec88d48bd3d04c004c9a8e6ce23eefb54995d7b4473c021f8a72c06fe3ce6488e6b1b8ad51b635a853121f4285c0c364aab061aea672cb6dd86cee08b63a5b3f1fc78f1712e1a333b2552471e5ad8403f",
    16,
)
